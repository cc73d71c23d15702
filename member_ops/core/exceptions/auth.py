"""
Authorization Exceptions

Author: Platform Team
Date: 2025-10-02
"""

from member_ops.core.exceptions.base import MemberOpsError


class AuthorizationError(MemberOpsError):
    """
    Raised when the caller lacks the role an operational endpoint requires.

    Rendered by the application as ``{"error": message}`` with ``status_code``.
    """

    status_code = 403
