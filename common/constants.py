"""Project-wide constants (pointer width, endpoints, recovery cadence)."""

GATEWAY_ID_LEN: int = 24  # remote object ids are 24-char hex strings

API_KEY_HEADER: str = "x-api-key"

DEFAULT_CONFIG_PATH: str = "./config/gateway.json"
CONFIG_PATH_ENV: str = "SDS_GATEWAY_CONFIG"

FILES_ENDPOINT: str = "files"
FILE_INFO_ENDPOINT: str = "info"
HEALTH_ENDPOINT: str = "health"

UPLOAD_FILE_FIELD: str = "file"
UPLOAD_NAME_FIELD: str = "DisplayName"

SPOOL_PREFIX: str = "sds-upload-"

RECOVERY_BATCH_LIMIT: int = 5000
RECOVERY_PROGRESS_EVERY: int = 500
RECOVERY_TAG_FORMAT: str = "%Y%m%d_%H%M%S"
RECOVERY_TMP_SUFFIX: str = "_recovery_tmp"
RECOVERY_FINAL_SUFFIX: str = "_recovery"
