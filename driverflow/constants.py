"""
Environment-based configuration for the DriverFlow membership service.

Values can be overridden via environment variables.
"""

from os import environ

API_TITLE = "DriverFlow Membership API"
API_VERSION = "1.0.0"

LOG_LEVEL = environ.get("DRIVERFLOW_LOG_LEVEL", "INFO")
SEED_DEMO_DATA = environ.get("DRIVERFLOW_SEED_DEMO_DATA", "false").lower() in (
    "1",
    "true",
    "yes",
)

# Operator defaults
DEFAULT_GROUP_BASE_NAME = environ.get(
    "DRIVERFLOW_DEFAULT_GROUP_BASE_NAME", "Grupo"
)
DEFAULT_MAX_CLIENTS_PER_GROUP = int(
    environ.get("DRIVERFLOW_DEFAULT_MAX_CLIENTS_PER_GROUP", "30")
)
DEFAULT_GROUP_PHOTO = environ.get(
    "DRIVERFLOW_DEFAULT_GROUP_PHOTO",
    "https://images.unsplash.com/photo-1557804506-669a67965ba0?w=400&h=400&fit=crop",
)
DEFAULT_DRIVER_PHOTO = environ.get(
    "DRIVERFLOW_DEFAULT_DRIVER_PHOTO",
    "https://images.unsplash.com/photo-1507003211169-0a1dd7228f2d?w=150&h=150&fit=crop",
)

# Id prefixes
OPERATOR_ID_PREFIX = "op"
DRIVER_ID_PREFIX = "d"
CLIENT_ID_PREFIX = "c"
GROUP_ID_PREFIX = "g"
BAN_ID_PREFIX = "ban"
