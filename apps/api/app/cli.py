"""CLI tools for business admin bootstrap and maintenance."""

import click

from app.core.config import settings
from app.core.exceptions import AppError
from app.db.session import SessionLocal


@click.group()
def cli():
    """Business admin CLI tools."""
    pass


@cli.command()
@click.option("--name", default=None, help="Display name (default: SUPERADMIN_NAME)")
@click.option("--email", default=None, help="Email address (default: SUPERADMIN_EMAIL)")
@click.option("--password", default=None, help="Password (default: SUPERADMIN_PASSWORD)")
def create_superadmin(name: str | None, email: str | None, password: str | None):
    """
    Create or promote the superadmin account (idempotent).

    Values fall back to SUPERADMIN_NAME / SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD.

    Example:
        bizadmin create-superadmin --email "root@example.com" --password "change-me-now"
    """
    from app.services import auth_service

    name = name or settings.SUPERADMIN_NAME
    email = email or settings.SUPERADMIN_EMAIL
    password = password or settings.SUPERADMIN_PASSWORD
    if not email or not password:
        click.echo("❌ Email and password are required (options or SUPERADMIN_* settings)")
        raise SystemExit(1)

    db = SessionLocal()
    try:
        user = auth_service.ensure_superadmin(db, name=name, email=email, password=password)
        db.commit()
        click.echo(f"✓ Superadmin ready: {user.email}")
        click.echo(f"  ID: {user.id}")
    except AppError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Business name")
@click.option("--owner-email", required=True, help="Email of an existing user to own the business")
def create_business(name: str, owner_email: str):
    """
    Create a business owned by an existing user.

    The slug is generated from the name. The owner is granted the
    business_admin global role if they hold no global role yet.

    Example:
        bizadmin create-business --name "Acme Corp" --owner-email "owner@acme.com"
    """
    from app.db.enums import GlobalRole
    from app.services import business_service, user_service

    db = SessionLocal()
    try:
        owner = user_service.get_user_by_email(db, owner_email)
        if not owner or owner.is_deleted:
            click.echo(f"❌ User not found: {owner_email}")
            raise SystemExit(1)

        if owner.profile.role is None:
            owner.profile.role = GlobalRole.BUSINESS_ADMIN.value
            db.flush()

        business = business_service.create_business(db, owner, name=name)
        db.commit()

        click.echo(f"✓ Created business: {name}")
        click.echo(f"  ID: {business.id}")
        click.echo(f"  Slug: {business.slug}")
        click.echo(f"✓ Owner: {owner.email}")
    except AppError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--name", required=True, help="Feature name")
@click.option("--slug", default=None, help="Feature slug (default: derived from name)")
@click.option("--category", default="general", help="Feature category")
@click.option("--description", default=None, help="Feature description")
def create_feature(name: str, slug: str | None, category: str, description: str | None):
    """
    Add a feature to the catalog.

    Example:
        bizadmin create-feature --name "Attendance" --category "hr"
    """
    from app.services import feature_service

    db = SessionLocal()
    try:
        feature = feature_service.create_feature(
            db, name=name, slug=slug, category=category, description=description
        )
        db.commit()
        click.echo(f"✓ Created feature: {feature.name} ({feature.slug})")
    except AppError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """
    Revoke all sessions for a user by bumping their token_version.

    Example:
        bizadmin revoke-sessions --email "user@example.com"
    """
    from app.services import user_service

    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            raise SystemExit(1)

        old_version = user.token_version
        user_service.revoke_all_sessions(db, user)
        db.commit()

        click.echo(f"✓ Revoked all sessions for {user.email}")
        click.echo(f"  Token version: {old_version} → {user.token_version}")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
