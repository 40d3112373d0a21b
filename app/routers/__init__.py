"""API router package."""

from app.routers import account, auth, earn, history, mining, withdraw

__all__ = [
    "account",
    "auth",
    "earn",
    "history",
    "mining",
    "withdraw",
]
