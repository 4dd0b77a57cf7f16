"""Application-wide constants.

This module centralizes the fixed wire vocabulary of the Messenger webhook
platform so parsers, the classifier and the HTTP layer share a single
source of truth.
"""

# =============================================================================
# Webhook Envelope
# =============================================================================

# Required value of the top-level "object" field (compared case-insensitively)
OBJECT_TYPE_PAGE = "page"

# Required value of hub.mode during subscription verification
HUB_MODE_SUBSCRIBE = "subscribe"

# =============================================================================
# Signature Verification
# =============================================================================

# Header carrying the HMAC-SHA1 signature of the raw body
SIGNATURE_HEADER = "X-Hub-Signature"

# Header carrying the HMAC-SHA256 signature of the raw body
SIGNATURE_256_HEADER = "X-Hub-Signature-256"

# Algorithm used when a signature is computed without an explicit tag
DEFAULT_SIGNATURE_ALGORITHM = "sha1"

# =============================================================================
# Messaging Event Fields
# =============================================================================

PROP_SENDER = "sender"
PROP_RECIPIENT = "recipient"
PROP_ID = "id"
PROP_TIMESTAMP = "timestamp"

PROP_MESSAGE = "message"
PROP_OPTIN = "optin"
PROP_POSTBACK = "postback"
PROP_REFERRAL = "referral"
PROP_ACCOUNT_LINKING = "account_linking"
PROP_READ = "read"
PROP_DELIVERY = "delivery"

# Message sub-fields
PROP_MID = "mid"
PROP_TEXT = "text"
PROP_IS_ECHO = "is_echo"
PROP_APP_ID = "app_id"
PROP_METADATA = "metadata"
PROP_ATTACHMENTS = "attachments"
PROP_QUICK_REPLY = "quick_reply"
PROP_PAYLOAD = "payload"

# Attachment sub-fields
PROP_TYPE = "type"
PROP_URL = "url"
PROP_COORDINATES = "coordinates"
PROP_LAT = "lat"
PROP_LONG = "long"

# Referral / opt-in / postback sub-fields
PROP_REF = "ref"
PROP_SOURCE = "source"
PROP_AD_ID = "ad_id"
PROP_TITLE = "title"

# Account linking sub-fields
PROP_STATUS = "status"
PROP_AUTHORIZATION_CODE = "authorization_code"

# Read / delivery sub-fields
PROP_WATERMARK = "watermark"
PROP_MIDS = "mids"
