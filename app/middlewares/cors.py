from fastapi.middleware.cors import CORSMiddleware

from app.core.config import allowed_origins

LOCAL_DEV_ORIGINS = [
    "http://localhost:3000",  # Next.js dev server
    "http://127.0.0.1:3000",
]


def setup_cors(app):
    origins = allowed_origins()
    for origin in LOCAL_DEV_ORIGINS:
        if origin not in origins:
            origins.append(origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
