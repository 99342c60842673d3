"""
User account operations and authentication.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from shared.errors import (
    AuthenticationError,
    InternalError,
    NotFoundError,
    TaskManagerException,
    ValidationError,
)
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from shared.tracing import get_tracer, trace_operation
from shared.pagination import clamp_pagination
from .models import (
    AuthResponse,
    CreateUserRequest,
    LoginRequest,
    UpdateUserRequest,
    User,
    UserPage,
    UserResponse,
    ValidateTokenResponse,
    validate_email,
    validate_full_name,
    validate_password,
    validate_username,
    validated_changes,
)
from .repository.base import UserStore
from .security import JWTManager, PasswordHasher


class UserService:
    """User CRUD plus register/login/validate over a ``UserStore``."""

    def __init__(
        self,
        store: UserStore,
        jwt_manager: JWTManager,
        hasher: Optional[PasswordHasher] = None,
        metrics: Optional[MetricsCollector] = None,
        logger=None,
        tracer=None
    ):
        self.store = store
        self.jwt_manager = jwt_manager
        self.hasher = hasher or PasswordHasher()
        self.metrics = metrics
        self.logger = logger or get_logger("users.service")
        self.tracer = tracer or get_tracer("users.service")

    async def create_user(self, request: CreateUserRequest) -> UserResponse:
        with trace_operation(self.tracer, "UserService.CreateUser"):
            user = await self._observed("create", self._create, request)
            return UserResponse.from_user(user)

    async def get_user(self, user_id: str) -> UserResponse:
        with trace_operation(self.tracer, "UserService.GetUser", **{"user.id": user_id}):
            user = await self._observed("get", self._require_user, user_id)
            return UserResponse.from_user(user)

    async def update_user(self, user_id: str, request: UpdateUserRequest) -> UserResponse:
        with trace_operation(self.tracer, "UserService.UpdateUser", **{"user.id": user_id}):
            user = await self._observed("update", self._update, user_id, request)
            return UserResponse.from_user(user)

    async def delete_user(self, user_id: str) -> None:
        with trace_operation(self.tracer, "UserService.DeleteUser", **{"user.id": user_id}):
            await self._observed("delete", self._delete, user_id)

    async def list_users(self, page: Optional[int] = None, page_size: Optional[int] = None) -> UserPage:
        with trace_operation(self.tracer, "UserService.ListUsers"):
            page, page_size = clamp_pagination(page, page_size)
            users, total = await self._observed("list", self._store_call, "list", self.store.list, page, page_size)
            return UserPage(
                users=[UserResponse.from_user(user) for user in users],
                total=total,
                page=page,
                page_size=page_size,
            )

    async def register(self, request: CreateUserRequest) -> AuthResponse:
        with trace_operation(self.tracer, "UserService.Register"):
            user = await self._observed("register", self._create, request)
            return AuthResponse(user=UserResponse.from_user(user), token=self.jwt_manager.generate(user))

    async def login(self, request: LoginRequest) -> AuthResponse:
        with trace_operation(self.tracer, "UserService.Login"):
            user = await self._observed("login", self._authenticate, request)
            self.logger.info("User logged in", user_id=user.id)
            return AuthResponse(user=UserResponse.from_user(user), token=self.jwt_manager.generate(user))

    async def validate_token(self, token: str) -> ValidateTokenResponse:
        """Resolve a token to its user; an invalid token is ``valid=False``, not an error."""
        with trace_operation(self.tracer, "UserService.ValidateToken"):
            try:
                claims = self.jwt_manager.verify(token)
            except AuthenticationError:
                self._count("validate", "invalid")
                return ValidateTokenResponse(valid=False)

            user = await self._store_call("get", self.store.get, claims["user_id"])
            if user is None:
                self._count("validate", "invalid")
                return ValidateTokenResponse(valid=False)

            self._count("validate", "success")
            return ValidateTokenResponse(valid=True, user=UserResponse.from_user(user))

    async def _create(self, request: CreateUserRequest) -> User:
        username = validate_username(request.username)
        email = validate_email(request.email)
        password = validate_password(request.password)
        full_name = validate_full_name(request.full_name)
        user = User(
            username=username,
            email=email,
            password_hash=await self._hash(password),
            full_name=full_name,
        )
        created = await self._store_call("create", self.store.create, user)
        self.logger.info("User created", user_id=created.id, username=created.username)
        return created

    async def _update(self, user_id: str, request: UpdateUserRequest) -> User:
        changes = validated_changes(request)
        current = await self._require_user(user_id)

        password = changes.pop("password", None)
        if password is not None:
            changes["password_hash"] = await self._hash(password)

        updated = await self._store_call("update", self.store.update, current.model_copy(update=changes))
        if updated is None:
            raise NotFoundError("User not found", details={"user_id": user_id})

        self.logger.info("User updated", user_id=user_id, fields=sorted(changes))
        return updated

    async def _delete(self, user_id: str) -> None:
        if not await self._store_call("delete", self.store.delete, user_id):
            raise NotFoundError("User not found", details={"user_id": user_id})
        self.logger.info("User deleted", user_id=user_id)

    async def _authenticate(self, request: LoginRequest) -> User:
        user = await self._store_call("get", self.store.get_by_email, (request.email or "").strip().lower())
        # Unknown email and wrong password are indistinguishable to the caller
        if user is None or not await asyncio.to_thread(self.hasher.verify, request.password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user

    async def _hash(self, password: str) -> str:
        # PBKDF2 is CPU bound; keep it off the event loop
        return await asyncio.to_thread(self.hasher.hash, password)

    async def _require_user(self, user_id: str) -> User:
        if not user_id or not user_id.strip():
            raise ValidationError("user_id is required", details={"field": "user_id"})
        user = await self._store_call("get", self.store.get, user_id)
        if user is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return user

    async def _store_call(self, operation: str, func: Callable[..., Awaitable[Any]], *args):
        try:
            return await func(*args)
        except TaskManagerException:
            raise
        except Exception as e:
            self.logger.error("User store operation failed", operation=operation, error=str(e))
            raise InternalError(f"Failed to {operation} user") from e

    async def _observed(self, operation: str, func: Callable[..., Awaitable[Any]], *args):
        try:
            result = await func(*args)
        except TaskManagerException as e:
            self._count(operation, e.code.lower())
            raise
        self._count(operation, "success")
        return result

    def _count(self, operation: str, outcome: str) -> None:
        if self.metrics is None:
            return
        try:
            self.metrics.increment_counter("user_operations_total", operation=operation, outcome=outcome)
        except Exception as e:
            self.logger.debug("Metrics emission failed", error=str(e))
