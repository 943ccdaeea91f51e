"""Authentication routes."""

# type: ignore

from typing import Annotated, Optional
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.logging_config import get_logger, security_logger
from app.core.rate_limiting import login_rate_limiter
from app.core.responses import success_response
from app.core.security import (
    DUMMY_PASSWORD_HASH,
    create_access_token,
    hash_password,
    verify_password,
)
from app.core.validation import (
    PasswordValidator,
    UsernameValidator,
    normalize_trn,
    sanitize_string,
)
from app.services.audit import AuditAction, AuditSeverity, create_audit_log
from app.services.users import (
    create_user,
    generate_observer_id,
    get_user_by_username,
    update_user_last_login,
    username_or_email_taken,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger(__name__)

class RegisterRequest(BaseModel):
    """Observer self-registration request."""

    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    trn: Optional[str] = None
    parish_id: Optional[UUID] = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = sanitize_string(v, max_length=50)
        is_valid, error = UsernameValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        is_valid, error = PasswordValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = sanitize_string(v, max_length=255).lower()
        local, _, domain = v.partition("@")
        if not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v

    @field_validator("first_name", "last_name", "phone")
    @classmethod
    def sanitize_names(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_string(v, max_length=100) if v else v

    @field_validator("trn")
    @classmethod
    def validate_trn(cls, v: Optional[str]) -> Optional[str]:
        return normalize_trn(v) if v else None


class LoginRequest(BaseModel):
    username: str = Field(..., max_length=50)
    password: str = Field(..., max_length=128)

    @field_validator("username", "password")
    @classmethod
    def sanitize_field(cls, v: str) -> str:
        return sanitize_string(v, max_length=128)


@router.post("/register", response_model=dict, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Register a new observer.

    Accounts start with role `observer` and status `pending` until a
    coordinator activates them. A random six-digit observer id is assigned.

    **Request Body:**
    ```json
    {
        "username": "jbrown",
        "email": "jbrown@example.com",
        "password": "SecurePass123!",
        "first_name": "Janet",
        "last_name": "Brown",
        "trn": "123-456-789"
    }
    ```
    """
    logger.info(f"Registration attempt for username: {request.username}")

    try:
        taken = await username_or_email_taken(conn, request.username, request.email)
        if taken:
            logger.warning(f"Registration failed: {taken} already exists - {request.username}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{taken.capitalize()} already exists",
            )

        observer_id = await generate_observer_id(conn)
        user = await create_user(
            conn,
            username=request.username,
            email=request.email,
            password_hash=hash_password(request.password),
            first_name=request.first_name,
            last_name=request.last_name,
            observer_id=observer_id,
            phone=request.phone,
            trn=request.trn,
            parish_id=request.parish_id,
        )

        security_logger.log_user_registration(
            username=request.username, role=user["role"], observer_id=observer_id
        )
        await create_audit_log(
            conn,
            action_type=AuditAction.USER_REGISTERED,
            user_id=user["id"],
            resource_type="user",
            resource_id=user["id"],
            details={"username": request.username, "observer_id": observer_id},
        )

        return success_response(data=user, message="Registration successful")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error for user {request.username}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during registration. Please try again later.",
        )


@router.post("/login")
async def login(
    request: LoginRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Authenticate a user and return a JWT bearer token.

    - Max 5 attempts per username and 10 per IP within 5 minutes
    - Password is verified even for unknown usernames

    **Response:**
    ```json
    {
        "success": true,
        "data": {
            "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
            "token_type": "bearer",
            "user": {"id": "...", "username": "jbrown", "role": "observer"}
        }
    }
    ```
    """
    client_ip = http_request.client.host if http_request.client else None
    user_agent = http_request.headers.get("user-agent")

    logger.info(f"Login attempt for user: {request.username} from IP: {client_ip}")

    try:
        allowed, error_msg = login_rate_limiter.check_login_allowed(request.username, client_ip)
        if not allowed:
            security_logger.log_login_attempt(
                username=request.username,
                success=False,
                ip_address=client_ip,
                user_agent=user_agent,
                reason="rate_limited",
            )
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=error_msg)

        user = await get_user_by_username(conn, request.username)
        password_hash = user["password_hash"] if user else DUMMY_PASSWORD_HASH
        password_valid = verify_password(request.password, password_hash)

        if not (user and password_valid):
            login_rate_limiter.record_failed_attempt(request.username, client_ip)
            reason = "invalid_username" if not user else "invalid_password"
            security_logger.log_login_attempt(
                username=request.username,
                success=False,
                ip_address=client_ip,
                user_agent=user_agent,
                reason=reason,
            )
            await create_audit_log(
                conn,
                action_type=AuditAction.LOGIN_FAILED,
                user_id=user["id"] if user else None,
                severity=AuditSeverity.WARNING,
                ip_address=client_ip,
                user_agent=user_agent,
                details={"username": request.username, "reason": reason},
            )
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid username or password",
            )

        if user.get("status") == "suspended":
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account suspended")

        login_rate_limiter.record_successful_login(request.username, client_ip)
        await update_user_last_login(conn, UUID(str(user["id"])))

        access_token = create_access_token(data={"sub": str(user["id"])})
        security_logger.log_login_attempt(
            username=request.username,
            success=True,
            ip_address=client_ip,
            user_agent=user_agent,
        )
        security_logger.log_token_creation(str(user["id"]), "access")
        await create_audit_log(
            conn,
            action_type=AuditAction.LOGIN,
            user_id=user["id"],
            resource_type="user",
            resource_id=user["id"],
            ip_address=client_ip,
            user_agent=user_agent,
        )

        user_data = {k: v for k, v in user.items() if k != "password_hash"}
        return success_response(
            data={"access_token": access_token, "token_type": "bearer", "user": user_data}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error for user {request.username}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during login. Please try again later.",
        )


@router.get("/me")
async def get_me(current_user: Annotated[dict, Depends(get_current_user)]):
    """Return the authenticated user's profile."""
    return success_response(data=current_user)
