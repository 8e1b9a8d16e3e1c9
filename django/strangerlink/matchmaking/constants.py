MODE_TEXT = "text"
MODE_VIDEO = "video"

MODE_CHOICES = [
    (MODE_TEXT, "Text"),
    (MODE_VIDEO, "Video"),
]
MODES = {MODE_TEXT, MODE_VIDEO}

POLICY_LIFO = "lifo"
POLICY_FIFO = "fifo"
QUEUE_POLICIES = {POLICY_LIFO, POLICY_FIFO}

STATE_IDLE = "idle"
STATE_WAITING = "waiting"
STATE_PAIRED = "paired"
STATE_GONE = "gone"

# client -> server
EVENT_FIND_PARTNER = "find_partner"
EVENT_LEAVE_ROOM = "leave_room"
EVENT_MESSAGE = "message"
EVENT_SIGNAL = "signal"
EVENT_REPORT = "report"

# server -> client
EVENT_UPDATE_COUNT = "update_count"
EVENT_WAITING = "waiting"
EVENT_MATCH_FOUND = "match_found"
EVENT_MAKE_OFFER = "make_offer"
EVENT_PARTNER_DISCONNECTED = "partner_disconnected"
EVENT_REPORT_RECEIVED = "report_received"
EVENT_ERROR = "error"

SIGNAL_OFFER = "offer"
SIGNAL_ANSWER = "answer"
SIGNAL_CANDIDATE = "candidate"
SIGNAL_TYPES = [SIGNAL_OFFER, SIGNAL_ANSWER, SIGNAL_CANDIDATE]

PARTNER_SENDER = "stranger"
PRESENCE_GROUP = "presence"
ROOM_PREFIX = "room_"
