"""
Configuration-related constants and resource limits.
"""

# Maximum config file size (1MB); the supervisor config is a few dozen lines
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

DEFAULT_ENV_PREFIX = "GUESTVISOR_"

DEFAULT_CONFIG_FILENAME = "guestvisor.yaml"

# Names the config file itself, never applied as an override
CONFIG_FILE_ENV = "GUESTVISOR_CONFIG"
