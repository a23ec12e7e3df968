# Inbound events
JOIN = "join"
OFFER = "offer"
ANSWER = "answer"
CANDIDATE = "candidate"
CHAT_MESSAGE = "chatMessage"
SIGNAL = "signal"

# Outbound events
CONNECTED = "connected"  # {id} sent once when the socket is accepted
JOINED = "joined"  # {room, id} to the joining connection
READY = "ready"  # {from, username} to the other room members
JOIN_ERROR = "joinError"  # {message}
USER_DISCONNECTED = "userDisconnected"  # {connectionId} to the remaining members

# offer/answer/candidate are relayed under the same name they arrive with
