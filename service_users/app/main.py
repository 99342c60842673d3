"""
User service: accounts and authentication.
"""

from typing import Dict, Optional

from fastapi import Query

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .models import (
    AuthResponse,
    CreateUserRequest,
    LoginRequest,
    UpdateUserRequest,
    UserPage,
    UserResponse,
    ValidateTokenRequest,
    ValidateTokenResponse,
)
from .repository import InMemoryUserStore, PostgresUserStore, UserStore
from .security import JWTManager
from .service import UserService


def build_store(config: ServiceConfig) -> UserStore:
    if config.store_backend == "postgres":
        return PostgresUserStore(
            config.postgres_dsn,
            min_size=config.postgres_min_pool_size,
            max_size=config.postgres_max_pool_size
        )
    return InMemoryUserStore()


class UsersService(BaseService):
    """User service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, store: Optional[UserStore] = None):
        config = config or get_config("users", 8021)
        super().__init__("users", config.port, config=config)
        self.store = store or build_store(self.config)
        self.user_service = UserService(
            self.store,
            JWTManager(self.config.jwt_secret, self.config.jwt_expiration_hours),
            metrics=self.metrics,
            logger=self.logger.bind(component="user_service")
        )
        self._setup_user_routes()

    async def startup(self):
        await self.store.start()

    async def shutdown(self):
        await self.store.stop()

    def _setup_user_routes(self):
        """Set up user and auth routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": "users",
                "message": "Task Manager - User Service",
                "version": "1.0.0",
            }

        @self.app.post("/users", response_model=UserResponse, status_code=201)
        async def create_user(request: CreateUserRequest):
            return await self.user_service.create_user(request)

        @self.app.get("/users", response_model=UserPage)
        async def list_users(
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None)
        ):
            return await self.user_service.list_users(page, page_size)

        @self.app.get("/users/{user_id}", response_model=UserResponse)
        async def get_user(user_id: str):
            return await self.user_service.get_user(user_id)

        @self.app.put("/users/{user_id}", response_model=UserResponse)
        async def update_user(user_id: str, request: UpdateUserRequest):
            return await self.user_service.update_user(user_id, request)

        @self.app.delete("/users/{user_id}")
        async def delete_user(user_id: str):
            await self.user_service.delete_user(user_id)
            return {"success": True}

        @self.app.post("/auth/register", response_model=AuthResponse, status_code=201)
        async def register(request: CreateUserRequest):
            """Create an account and return a token for it."""
            return await self.user_service.register(request)

        @self.app.post("/auth/login", response_model=AuthResponse)
        async def login(request: LoginRequest):
            return await self.user_service.login(request)

        @self.app.post("/auth/validate", response_model=ValidateTokenResponse)
        async def validate(request: ValidateTokenRequest):
            return await self.user_service.validate_token(request.token)

    async def _check_dependencies(self) -> Dict[str, str]:
        try:
            return {"store": "ok" if await self.store.ping() else "error"}
        except Exception as e:
            self.logger.warning("Dependency check failed", dependency="store", error=str(e))
            return {"store": "error"}


def create_app():
    """Create user service application."""
    service = UsersService()
    return service.app


if __name__ == "__main__":
    service = UsersService()
    service.run()
