# Routers module for Bookify API
from bookify.routers import auth
from bookify.routers import admin_users
from bookify.routers import roles
from bookify.routers import categories
from bookify.routers import organizations
from bookify.routers import events
from bookify.routers import tickets
from bookify.routers import shops
from bookify.routers import stores
from bookify.routers import products
from bookify.routers import cart
from bookify.routers import orders
from bookify.routers import payments
from bookify.routers import rewards
from bookify.routers import redemptions
from bookify.routers import reviews
from bookify.routers import analytics
