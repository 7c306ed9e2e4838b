from .prospecting import router as prospecting_router

__all__ = ["prospecting_router"]
