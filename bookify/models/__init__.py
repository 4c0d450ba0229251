# Models module for Bookify API
from bookify.models.user import UserProfile, TokenResponse, AdminUserSummary, AdminUserDetail
from bookify.models.category import Category, CategoryCreate, CategoryUpdate
from bookify.models.organization import Organization, OrganizationCreate, OrganizationUpdate, Organizer
from bookify.models.event import Event, EventSummary, EventCreate, EventUpdate, EventStatus
from bookify.models.ticket import Ticket, TicketCreate, TicketUpdate
from bookify.models.product import Product, ProductSummary, ProductCreate, ProductUpdate
from bookify.models.outlet import Shop, Store, ShopCreate, StoreCreate, OutletUpdate
from bookify.models.cart import Cart, CartItem, CartItemCreate, CartItemUpdate, ItemType
from bookify.models.order import Order, OrderSummary, OrderStatus
from bookify.models.payment import Payment, PaymentCreate, PaymentUpdate, PaymentStatus
from bookify.models.reward import Reward, RewardCreate, RewardUpdate, Redemption, RedemptionStatus
from bookify.models.review import Review, ReviewCreate, ReviewUpdate, RatingSummary
