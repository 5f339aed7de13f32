# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/craftmarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Signing keys:
# - python -m flask keys generate --out-dir keys
#   Write an RS256 key pair (private.pem, public.pem) for JWT_PRIVATE_KEY_PATH / JWT_PUBLIC_KEY_PATH.
#
# Users:
# - python -m flask users create --email admin@craftmarket.local --full-name "Site Admin" --mobile 01700000000 --password "Adm1n!Pass" --role super_admin
#   Create an already-verified, active account (admin bootstrap).
# - python -m flask users list [--role artisan]
#   List users with role and status.
#
# Catalog:
# - python -m flask catalog add-product --name "Jute Basket" --price 12.50 --stock 10
# - python -m flask catalog set-price 1 14.00
# - python -m flask catalog list
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.
# - python -m flask maintenance clear-expired-otps
#   Drop verification codes past their expiry.

from pathlib import Path

import click
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError

from .errors import ApiError
from .extensions import db
from .models import User
from .roles import Role, UserStatus
from .services import account_service, catalog_service, credential_service, maintenance_service
from .validation import normalize_email, validate_full_name, validate_mobile
from craftmarket.time_utils import utcnow


# =============================================================================
# SYSTEM
# =============================================================================

@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask users create' to add an admin.")


# =============================================================================
# SIGNING KEYS
# =============================================================================

@click.group('keys')
def keys_group():
    """RS256 signing key management."""


def generate_key_pair(key_size: int = 2048) -> tuple[str, str]:
    """Returns (private_pem, public_pem)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


@keys_group.command('generate')
@click.option('--out-dir', default='keys', show_default=True, type=click.Path(file_okay=False))
@click.option('--key-size', default=2048, show_default=True, type=int)
@click.option('--force', is_flag=True, help='Overwrite existing key files')
def generate_keys_cli(out_dir, key_size, force):
    """Write private.pem and public.pem."""
    directory = Path(out_dir)
    private_path = directory / "private.pem"
    public_path = directory / "public.pem"

    if not force and (private_path.exists() or public_path.exists()):
        click.echo(f"FAIL Key files already exist in {directory} (use --force to overwrite)")
        return

    directory.mkdir(parents=True, exist_ok=True)
    private_pem, public_pem = generate_key_pair(key_size)
    private_path.write_text(private_pem, encoding="utf-8")
    private_path.chmod(0o600)
    public_path.write_text(public_pem, encoding="utf-8")

    click.echo(f"PASS Wrote {private_path} and {public_path}")
    click.echo(f"     export JWT_PRIVATE_KEY_PATH={private_path.resolve()}")
    click.echo(f"     export JWT_PUBLIC_KEY_PATH={public_path.resolve()}")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--mobile', prompt=True, help='Mobile number (10-15 digits)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice([r.value for r in Role]), default=Role.SUPER_ADMIN.value,
              show_default=True, help='Role')
@with_appcontext
def create_user_cli(email, full_name, mobile, password, role):
    """Create a verified, active user. Bypasses the OTP flow."""
    try:
        email = normalize_email(email)
        user = User(
            username=account_service.unique_username(email),
            email=email,
            full_name=validate_full_name(full_name),
            mobile=validate_mobile(mobile),
            password_hash=credential_service.hash_password(
                password, rounds=current_app.extensions["settings"].bcrypt_rounds
            ),
            role=role,
            status=UserStatus.ACTIVE.value,
            verified_at=utcnow(),
        )
        db.session.add(user)
        db.session.commit()
    except ApiError as e:
        click.echo(f"FAIL {e.message}")
        return
    except IntegrityError:
        db.session.rollback()
        click.echo("FAIL Email, mobile or username already in use")
        return

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, Role: {user.role})")


@users_group.command('list')
@click.option('--role', type=click.Choice([r.value for r in Role]), help='Only this role')
@with_appcontext
def list_users_cli(role):
    """List all users with role and status."""
    query = db.session.query(User).order_by(User.id.asc())
    if role:
        query = query.filter(User.role == role)
    users = query.all()

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"\n{'ID':<5} {'Email':<32} {'Role':<12} {'Requested':<10} {'Status':<10}")
    click.echo("-" * 72)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.email:<32} {user.role:<12} "
            f"{user.requested_role or '-':<10} {user.status:<10}"
        )


# =============================================================================
# CATALOG
# =============================================================================

@click.group('catalog')
def catalog_group():
    """Product catalog seeding."""


@catalog_group.command('add-product')
@click.option('--name', required=True)
@click.option('--price', required=True, help='Price, e.g. 12.50')
@click.option('--description', default=None)
@click.option('--category', default=None)
@click.option('--stock', default=0, type=int, show_default=True)
@click.option('--artisan-id', default=None, type=int, help='Owning artisan user id')
@with_appcontext
def add_product_cli(name, price, description, category, stock, artisan_id):
    try:
        product = catalog_service.add_product(
            name=name,
            price=price,
            description=description,
            category=category,
            stock=stock,
            artisan_user_id=artisan_id,
        )
    except ApiError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, Price: {product.to_dict()['price']})")


@catalog_group.command('set-price')
@click.argument('product_id', type=int)
@click.argument('price')
@with_appcontext
def set_price_cli(product_id, price):
    try:
        product = catalog_service.set_price(product_id, price)
    except ApiError as e:
        click.echo(f"FAIL {e.message}")
        return
    click.echo(f"PASS {product.name} now costs {product.to_dict()['price']}")


@catalog_group.command('list')
@with_appcontext
def list_products_cli():
    products = catalog_service.list_products()
    if not products:
        click.echo("No products found.")
        return
    for product in products:
        data = product.to_dict()
        click.echo(f"{product.id:<5} {product.name:<40} {data['price']:>12} stock={product.stock}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Retention and cleanup."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


@maintenance_group.command('clear-expired-otps')
@with_appcontext
def clear_expired_otps_cli():
    cleared = maintenance_service.clear_expired_otps()
    click.echo(f"Cleared expired verification codes for {cleared} users.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(keys_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
    app.cli.add_command(maintenance_group)
