from threadline.web.routers.comments import router as comments_router
from threadline.web.routers.sync import router as sync_router

__all__ = [
    "comments_router",
    "sync_router",
]
