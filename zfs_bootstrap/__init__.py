"""ZFS-on-root Debian bootstrap (Python-first, step-driven).

Core design goals:
- Explicit check / run / verify per step
- Fail-stop on the first error, with the failed step recorded
- Every external tool call goes through one runner
- Centralized logging
"""

__all__ = []
