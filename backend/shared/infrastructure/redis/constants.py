"""
Key layout in the key-value store.
"""

# =============================================================================
# TTL (Time To Live) Constants (in seconds)
# =============================================================================

# Login limiter windows (defaults; the live values come from settings)
LOGIN_IP_WINDOW = 3600  # 1 hour
LOGIN_USER_WINDOW = 900  # 15 minutes


# =============================================================================
# Key Prefixes
# =============================================================================

# Revocation entries are keyed by the raw token string
PREFIX_AUTH_BLACKLIST = "auth:blacklist:"
PREFIX_AUTH_USER_REVOKE = "auth:user:revoked:"

PREFIX_LOGIN_LIMIT_IP = "login:limit:ip:"
PREFIX_LOGIN_LIMIT_USER = "login:limit:user:"


def get_blacklist_key(token: str) -> str:
    return f"{PREFIX_AUTH_BLACKLIST}{token}"


def get_user_revoke_key(user_id: int | str) -> str:
    return f"{PREFIX_AUTH_USER_REVOKE}{user_id}"


def get_login_ip_key(ip: str) -> str:
    return f"{PREFIX_LOGIN_LIMIT_IP}{ip}"


def get_login_user_key(identifier: str) -> str:
    return f"{PREFIX_LOGIN_LIMIT_USER}{identifier}"
