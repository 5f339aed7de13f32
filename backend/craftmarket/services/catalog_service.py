# Overview: Product lookups for the cart and catalog seeding for the CLI.

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Product
from ..money import to_cents


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def add_product(
    name: str,
    price,
    description: str | None = None,
    category: str | None = None,
    stock: int = 0,
    artisan_user_id: int | None = None,
) -> Product:
    if not name or not name.strip():
        raise ValidationError("name is required")
    try:
        price_cents = to_cents(price)
    except ValueError as e:
        raise ValidationError(str(e))
    if stock < 0:
        raise ValidationError("stock must be >= 0")

    product = Product(
        name=name.strip(),
        description=description,
        price_cents=price_cents,
        category=category,
        stock=stock,
        artisan_user_id=artisan_user_id,
    )
    db.session.add(product)
    db.session.commit()
    return product


def set_price(product_id: int, price) -> Product:
    """
    Change the catalog price. Existing carts keep their snapshot until the
    line is touched again; orders never change.
    """
    product = get_product(product_id)
    try:
        product.price_cents = to_cents(price)
    except ValueError as e:
        raise ValidationError(str(e))
    db.session.commit()
    return product


def list_products() -> list[Product]:
    return db.session.query(Product).order_by(Product.id.asc()).all()
