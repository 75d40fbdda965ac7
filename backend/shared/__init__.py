"""
Shared building blocks for the REST API and the operator CLI.

STRUCTURE:
- shared.security: Authentication and authorization
  - password.py: Bcrypt hashing
  - tokens.py: JWT access/refresh codec
  - token_blacklist.py: Token and per-user revocation
  - rate_limit.py: Login attempt limiter, slowapi throttling
  - auth.py: Access gate and role dependencies
  - audit_log.py: Background login observation dispatcher

- shared.infrastructure: Storage
  - db.py: SQLAlchemy engines and sessions, safe_commit()
  - kv_store.py: Redis / in-memory key-value store
  - correlation.py: Request ids

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Roles, statuses, error codes

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - schemas.py: Shared Pydantic schemas
  - health.py: Dependency health checks

IMPORT EXAMPLES:
    from shared.security.auth import current_identity, require_admin
    from shared.infrastructure.db import safe_commit
    from shared.config.settings import settings
    from shared.config.constants import Roles, ErrorCode
    from shared.utils.exceptions import NotFoundError, ForbiddenError
"""
