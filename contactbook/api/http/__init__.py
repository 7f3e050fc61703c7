from contactbook.api.http.health import router as health_router
from contactbook.api.http.auth import router as auth_router
from contactbook.api.http.users import router as users_router
from contactbook.api.http.contacts import router as contacts_router

__all__ = [
    "health_router",
    "auth_router",
    "users_router",
    "contacts_router"
]
