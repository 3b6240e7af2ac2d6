"""
Project constants definitions
"""

# ============================================================
# Default Values
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_PREFERRED_AUTHENTICATIONS = "publickey,password"
DEFAULT_SFTP_TIMEOUT = 5.0  # seconds
MIN_SFTP_TIMEOUT = 0.05  # seconds

# ============================================================
# Session Config Keys
# ============================================================

PREFERRED_AUTHENTICATIONS = "PreferredAuthentications"
SERVER_HOST_KEY = "server_host_key"
STRICT_HOST_KEY_CHECKING = "StrictHostKeyChecking"

# ============================================================
# Channels
# ============================================================

SFTP_CHANNEL = "sftp"

# ============================================================
# SSH Config
# ============================================================

SSH_CONFIG_PATH = "~/.ssh/config"
DEFAULT_KNOWN_HOSTS_FILE = "~/.ssh/known_hosts"

# ============================================================
# Configuration
# ============================================================

ENV_PREFIX = "REMOTE_SFTP_"
PARAMIKO_LOG_CHANNEL = "remote_sftp.paramiko"
