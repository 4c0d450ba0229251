from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from bookify.config import settings
from bookify.database import DatabasePool, check_database
from bookify.core.logging import setup_logging
from bookify.core.exceptions import api_exception_handler, general_exception_handler, APIError
from bookify.core.middleware import session_validation_middleware, request_logging_middleware

# Initialize logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - the pool is created lazily and closed on shutdown"""
    yield
    await DatabasePool.close_pool()


app = FastAPI(
    title="Bookify API",
    description="Event ticketing, merchandise and loyalty rewards",
    version="1.0.0",
    debug=settings.debug,
    docs_url="/docs",
    lifespan=lifespan
)

# Exception handlers
app.add_exception_handler(APIError, api_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware (order matters - first added runs last)
# Execution order: session_validation → logging
app.middleware("http")(request_logging_middleware)   # runs last
app.middleware("http")(session_validation_middleware) # runs first

# Import and include routers
from bookify.routers import (
    auth, admin_users, roles, categories, organizations, events, tickets,
    shops, stores, products, cart, orders, payments, rewards, redemptions,
    reviews, analytics
)

API_PREFIX = "/api"

# Authentication (public endpoints, some require auth)
app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])

# User and role administration (Admin)
app.include_router(admin_users.router, prefix=f"{API_PREFIX}/admin/users", tags=["admin-users"])
app.include_router(roles.router, prefix=f"{API_PREFIX}/roles", tags=["roles"])

# Catalog (public reads, Organizer/Admin writes)
app.include_router(categories.router, prefix=f"{API_PREFIX}/categories", tags=["categories"])
app.include_router(organizations.router, prefix=f"{API_PREFIX}/organizations", tags=["organizations"])
app.include_router(events.router, prefix=f"{API_PREFIX}/events", tags=["events"])
app.include_router(tickets.router, prefix=f"{API_PREFIX}/tickets", tags=["tickets"])
app.include_router(shops.router, prefix=f"{API_PREFIX}/shops", tags=["shops"])
app.include_router(stores.router, prefix=f"{API_PREFIX}/stores", tags=["stores"])
app.include_router(products.router, prefix=f"{API_PREFIX}/products", tags=["products"])

# Commerce (requires auth)
app.include_router(cart.router, prefix=f"{API_PREFIX}/cart", tags=["cart"])
app.include_router(orders.router, prefix=f"{API_PREFIX}/orders", tags=["orders"])
app.include_router(payments.router, prefix=f"{API_PREFIX}/payments", tags=["payments"])

# Loyalty
app.include_router(rewards.router, prefix=f"{API_PREFIX}/rewards", tags=["rewards"])
app.include_router(redemptions.router, prefix=f"{API_PREFIX}/redemptions", tags=["redemptions"])
app.include_router(reviews.router, prefix=f"{API_PREFIX}/reviews", tags=["reviews"])

# Reporting (Admin)
app.include_router(analytics.router, prefix=f"{API_PREFIX}/analytics", tags=["analytics"])


@app.get("/")
async def root():
    return {
        "service": "Bookify API",
        "version": "1.0.0",
        "environment": settings.app_env
    }


@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "database": await check_database()
    }


# Auto-start server if run directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "bookify.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
