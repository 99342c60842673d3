"""
API Gateway package for the task manager.

The gateway fronts client requests, enforcing:
- Authentication: bearer JWTs, verified locally or by the user service
- Owner scoping: task reads and writes run as the authenticated user

Structure:
- app.main: FastAPI app and the ``/api/v1`` routes.
- app.adapters: HTTP clients for the user and todo services.
- app.auth: Local token verification.
- app.domain: Auth middleware.
"""
