"""
Security utilities for NACS Car Rental
Firebase ID token verification, role checks, log redaction
"""
from fastapi import HTTPException, status, Header, Depends
from typing import Optional, Dict, Any
import logging
import re

from nacs_rental.core.firebase import verify_id_token, get_user

logger = logging.getLogger(__name__)

ADMIN_ROLES = ('admin', 'support')


# ==================== Firebase Auth User Extraction ====================

async def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Dict[str, Any]:
    """
    Extract and verify Firebase Auth user from Authorization header.

    Expects header format: "Bearer <firebase_id_token>"

    Args:
        authorization: Authorization header with Bearer token

    Returns:
        Dict with user info: uid, email, role, full_name, is_verified

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"}
        )

    token = parts[1]

    try:
        decoded_token = verify_id_token(token)
        uid = decoded_token.get('uid')

        if not uid:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing user ID"
            )

        # Profile lives in the users collection
        user_data = get_user(uid)

        if user_data:
            return {
                'uid': uid,
                'email': user_data.get('email', decoded_token.get('email', '')),
                'role': user_data.get('role', 'user'),
                'full_name': user_data.get('fullName', user_data.get('name', '')),
                'is_verified': bool(user_data.get('isVerified', False)),
            }
        else:
            # Signed in with Firebase Auth but no profile document yet
            return {
                'uid': uid,
                'email': decoded_token.get('email', ''),
                'role': decoded_token.get('role', 'user'),
                'full_name': decoded_token.get('name', ''),
                'is_verified': False,
            }

    except HTTPException:
        raise
    except ValueError as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )
    except Exception as e:
        safe_log_error("Auth error", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"}
        )


async def get_current_user_optional(
    authorization: Optional[str] = Header(None, alias="Authorization")
) -> Optional[Dict[str, Any]]:
    """
    Optional Firebase Auth user extraction.
    Returns None if no token provided, raises error only if token is invalid.
    """
    if not authorization:
        return None

    return await get_current_user(authorization)


async def require_admin(
    current_user: Dict[str, Any] = Depends(get_current_user)
) -> Dict[str, Any]:
    """Allow only admin/support accounts through"""
    if current_user.get('role') not in ADMIN_ROLES:
        logger.warning(f"User {current_user.get('uid')} denied admin access")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


# ==================== Log Redaction ====================

def redact_sensitive_data(text: str) -> str:
    """
    Redact sensitive information from logs
    Removes: emails, bearer tokens, phone numbers
    """
    if not text:
        return text

    text = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL_REDACTED]', text)

    # Firebase ID tokens are JWTs
    text = re.sub(r'\beyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+', '[TOKEN_REDACTED]', text)
    text = re.sub(r'\b(AIza[0-9A-Za-z_-]{35})\b', '[API_KEY_REDACTED]', text)

    # PH mobile numbers (+63 9xx / 09xx)
    text = re.sub(r'(?:\+63|\b0)9\d{2}[\s-]?\d{3}[\s-]?\d{4}\b', '[PHONE_REDACTED]', text)

    return text


def safe_log_error(message: str, error: Exception):
    """Log errors with sensitive data redaction"""
    safe_message = redact_sensitive_data(message)
    safe_error = redact_sensitive_data(str(error))
    logger.error(f"{safe_message}: {safe_error}")
