"""
SQLAlchemy Database Models

Relational layout of the menu builder:
- restaurants → categories → subcategories → dishes (strict tree)
- dish_options / dish_modifiers hang off a dish
- menu_links hold the short (hash, id) pair of a restaurant
- subscriptions track the owner's billing plan

Every child row carries an ``order_index`` for manual ordering inside
its parent. Deleting a parent cascades to its children.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Boolean, JSON, ForeignKey, UniqueConstraint,
)

from taptab.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Restaurant(Base):
    """A tenant's menu: identity, theme and display settings."""
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner_id = Column(String(64), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    slug = Column(String(200), nullable=False, unique=True, index=True)
    tagline = Column(String(500), nullable=True)
    hero_image_url = Column(String(1000), nullable=True)
    theme = Column(JSON, nullable=True)
    published = Column(Boolean, default=False, nullable=False)

    # =========================================================================
    # DISPLAY SETTINGS
    # =========================================================================
    grid_columns = Column(Integer, default=2, nullable=False)
    density = Column(String(20), default="comfortable", nullable=False)
    font_size = Column(String(20), default="medium", nullable=False)
    image_size = Column(String(20), default="medium", nullable=False)
    badge_colors = Column(JSON, nullable=True)
    show_prices = Column(Boolean, default=True, nullable=False)
    show_allergen_filter = Column(Boolean, default=True, nullable=False)
    allergen_filter_order = Column(JSON, nullable=True)
    dietary_filter_order = Column(JSON, nullable=True)
    badge_display_order = Column(JSON, nullable=True)
    editor_view_mode = Column(String(10), default="grid", nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self):
        return f"<Restaurant {self.slug} published={self.published}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(
        String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Subcategory(Base):
    __tablename__ = "subcategories"

    id = Column(String(36), primary_key=True, default=_new_id)
    category_id = Column(
        String(36), ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Dish(Base):
    """A menu item. ``price`` is kept as the owner typed it."""
    __tablename__ = "dishes"

    id = Column(String(36), primary_key=True, default=_new_id)
    subcategory_id = Column(
        String(36), ForeignKey("subcategories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(String(50), default="", nullable=False)
    image_url = Column(String(1000), nullable=True)

    # Badges
    is_new = Column(Boolean, default=False, nullable=False)
    is_special = Column(Boolean, default=False, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)
    is_chef_recommendation = Column(Boolean, default=False, nullable=False)

    # Dietary
    allergens = Column(JSON, nullable=True)
    calories = Column(Integer, nullable=True)
    is_vegetarian = Column(Boolean, default=False, nullable=False)
    is_vegan = Column(Boolean, default=False, nullable=False)
    is_spicy = Column(Boolean, default=False, nullable=False)

    has_options = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class DishOption(Base):
    """Mutually exclusive size/variant of a dish."""
    __tablename__ = "dish_options"

    id = Column(String(36), primary_key=True, default=_new_id)
    dish_id = Column(String(36), ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(String(50), default="0.00", nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class DishModifier(Base):
    """Additive add-on of a dish (multi-select)."""
    __tablename__ = "dish_modifiers"

    id = Column(String(36), primary_key=True, default=_new_id)
    dish_id = Column(String(36), ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(String(50), default="0.00", nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class MenuLink(Base):
    """Short link of a restaurant. One row per restaurant."""
    __tablename__ = "menu_links"
    __table_args__ = (
        UniqueConstraint("restaurant_hash", "menu_id", name="uq_menu_links_hash_menu_id"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(
        String(36), ForeignKey("restaurants.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    restaurant_hash = Column(String(12), nullable=False, index=True)
    menu_id = Column(String(8), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class Subscription(Base):
    """Billing state of an owner, maintained by the payment webhook."""
    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(64), nullable=False, unique=True)
    stripe_customer_id = Column(String(100), nullable=True)
    stripe_subscription_id = Column(String(100), nullable=True, index=True)
    status = Column(String(30), default="active", nullable=False)
    plan_type = Column(String(30), default="free", nullable=False)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


MODELS_BY_TABLE = {
    model.__tablename__: model
    for model in (Restaurant, Category, Subcategory, Dish, DishOption, DishModifier, MenuLink, Subscription)
}
