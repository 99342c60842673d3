"""
API Gateway service: the public REST surface of the task manager.
"""

from typing import Any, Dict, Optional

from fastapi import Body, Depends, Query, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .adapters import TodoServiceClient, UserServiceClient
from .auth import AuthContext, LocalTokenVerifier
from .domain import AuthMiddleware


class GatewayService(BaseService):
    """API Gateway service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        user_client: Optional[UserServiceClient] = None,
        todo_client: Optional[TodoServiceClient] = None
    ):
        config = config or get_config("gateway", 8000)
        super().__init__("gateway", config.port, config=config)
        self.user_client = user_client or UserServiceClient(
            self.config.user_service_url,
            timeout=self.config.downstream_timeout_seconds,
            metrics=self.metrics
        )
        self.todo_client = todo_client or TodoServiceClient(
            self.config.todo_service_url,
            timeout=self.config.downstream_timeout_seconds,
            metrics=self.metrics
        )
        self.auth_middleware = AuthMiddleware(
            LocalTokenVerifier(self.config.jwt_secret),
            self.user_client,
            metrics=self.metrics
        )
        self._setup_gateway_routes()

    async def shutdown(self):
        await self.user_client.close()
        await self.todo_client.close()

    def _setup_gateway_routes(self):
        """Set up public API routes."""

        async def current_user(request: Request) -> AuthContext:
            return await self.auth_middleware.authenticate_request(request)

        @self.app.get("/")
        async def root():
            return {
                "service": "gateway",
                "message": "Task Manager - API Gateway",
                "version": "1.0.0",
            }

        @self.app.get("/api/v1/health")
        async def api_health():
            """Health of the gateway and its downstream services."""
            dependencies = await self._check_dependencies()
            status = "ok" if all(value == "ok" for value in dependencies.values()) else "degraded"
            return {"service": "gateway", "status": status, "dependencies": dependencies}

        # Auth (public)

        @self.app.post("/api/v1/auth/register", status_code=201)
        async def register(body: Dict[str, Any] = Body(...)):
            return await self.user_client.register(body)

        @self.app.post("/api/v1/auth/login")
        async def login(body: Dict[str, Any] = Body(...)):
            return await self.user_client.login(body)

        @self.app.post("/api/v1/auth/validate")
        async def validate(body: Dict[str, Any] = Body(...)):
            return await self.user_client.validate_token(body.get("token", ""))

        # Users

        @self.app.get("/api/v1/users")
        async def list_users(
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None),
            auth: AuthContext = Depends(current_user)
        ):
            return await self.user_client.list_users(page, page_size)

        @self.app.post("/api/v1/users", status_code=201)
        async def create_user(body: Dict[str, Any] = Body(...), auth: AuthContext = Depends(current_user)):
            return await self.user_client.create_user(body)

        @self.app.get("/api/v1/users/me")
        async def get_current_user(auth: AuthContext = Depends(current_user)):
            return await self.user_client.get_user(auth.user_id)

        @self.app.put("/api/v1/users/me")
        async def update_current_user(
            body: Dict[str, Any] = Body(...),
            auth: AuthContext = Depends(current_user)
        ):
            return await self.user_client.update_user(auth.user_id, body)

        @self.app.get("/api/v1/users/{user_id}")
        async def get_user(user_id: str, auth: AuthContext = Depends(current_user)):
            return await self.user_client.get_user(user_id)

        @self.app.put("/api/v1/users/{user_id}")
        async def update_user(
            user_id: str,
            body: Dict[str, Any] = Body(...),
            auth: AuthContext = Depends(current_user)
        ):
            return await self.user_client.update_user(user_id, body)

        @self.app.delete("/api/v1/users/{user_id}")
        async def delete_user(user_id: str, auth: AuthContext = Depends(current_user)):
            return await self.user_client.delete_user(user_id)

        # Tasks

        @self.app.get("/api/v1/tasks")
        async def list_tasks(
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None),
            status: Optional[str] = Query(None),
            priority: Optional[str] = Query(None),
            user_id: Optional[str] = Query(None),
            sort_by: Optional[str] = Query(None),
            sort_desc: bool = Query(False),
            auth: AuthContext = Depends(current_user)
        ):
            """List tasks across owners with optional filters."""
            return await self.todo_client.list_tasks(
                page=page,
                page_size=page_size,
                status=status,
                priority=priority,
                user_id=user_id,
                sort_by=sort_by,
                sort_desc=sort_desc
            )

        @self.app.post("/api/v1/tasks", status_code=201)
        async def create_task(body: Dict[str, Any] = Body(...), auth: AuthContext = Depends(current_user)):
            """Create a task owned by the caller."""
            return await self.todo_client.create_task(auth.user_id, body)

        @self.app.get("/api/v1/tasks/me")
        async def list_my_tasks(
            page: Optional[int] = Query(None),
            page_size: Optional[int] = Query(None),
            status: Optional[str] = Query(None),
            priority: Optional[str] = Query(None),
            sort_by: Optional[str] = Query(None),
            sort_desc: bool = Query(False),
            auth: AuthContext = Depends(current_user)
        ):
            return await self.todo_client.list_user_tasks(
                auth.user_id,
                page=page,
                page_size=page_size,
                status=status,
                priority=priority,
                sort_by=sort_by,
                sort_desc=sort_desc
            )

        @self.app.get("/api/v1/tasks/{task_id}")
        async def get_task(task_id: str, auth: AuthContext = Depends(current_user)):
            return await self.todo_client.get_task(task_id, auth.user_id)

        @self.app.put("/api/v1/tasks/{task_id}")
        async def update_task(
            task_id: str,
            body: Dict[str, Any] = Body(...),
            auth: AuthContext = Depends(current_user)
        ):
            return await self.todo_client.update_task(task_id, auth.user_id, body)

        @self.app.delete("/api/v1/tasks/{task_id}")
        async def delete_task(task_id: str, auth: AuthContext = Depends(current_user)):
            return await self.todo_client.delete_task(task_id, auth.user_id)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check gateway downstream services."""
        return {
            "user_service": "ok" if await self.user_client.ping() else "error",
            "todo_service": "ok" if await self.todo_client.ping() else "error",
        }


def create_app():
    """Create gateway application."""
    service = GatewayService()
    return service.app


if __name__ == "__main__":
    service = GatewayService()
    service.run()
