from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campushub.api.v1.admin.router import router as admin_router
from campushub.api.v1.auth.router import router as auth_router
from campushub.api.v1.referrals.router import router as referrals_router
from campushub.core.logging_config import setup_logging


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="CampusHub API")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(referrals_router)
    app.include_router(admin_router)

    return app


app = create_app()
