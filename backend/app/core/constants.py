"""Application-wide constants for the CoachDesk platform."""

BRAND_NAME = "CoachDesk"

# Text constraints
MAX_NAME_LENGTH = 100
MAX_BIO_LENGTH = 2000
MIN_PASSWORD_LENGTH = 8
MAX_REASON_LENGTH = 500

# Pagination
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Billing
INVOICE_PREFIX = "INV"
DEFAULT_PLAN_COLOR = "#7B21BA"
PAYMENT_REQUEST_EXPIRE_DAYS = 14

# Clients
CLIENT_INVITE_EXPIRE_DAYS = 7
INACTIVE_COACH_DEFAULT_DAYS = 30

# Communities
COMMUNITY_ANALYTICS_DEFAULT_DAYS = 30
TOP_POSTERS_LIMIT = 5

# Messaging rooms
USER_ROOM_PREFIX = "user"
CONVERSATION_ROOM_PREFIX = "conversation"

# Content
TOP_CONTENT_DEFAULT_LIMIT = 10

# API
API_VERSION = "1.0.0"
WS_UNAUTHORIZED_CLOSE_CODE = 4401
