"""initial schema: auth, audit, site content, about page, packages, enquiries

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-02-02 10:12:41.208417

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create every table (idempotent)."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    # ---------- Auth / RBAC / audit ----------
    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("last_login_at", sa.DateTime(), nullable=True),
        )
    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(64), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
    if "permissions" not in existing_tables:
        op.create_table(
            "permissions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("key", sa.String(128), nullable=False, unique=True),
            sa.Column("name", sa.String(128), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
        )
    if "role_permissions" not in existing_tables:
        op.create_table(
            "role_permissions",
            sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
            sa.Column("permission_id", sa.Integer(), sa.ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
        )
    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
        )
        op.create_index("idx_audit_events_created_at", "audit_events", ["created_at"])
        op.create_index("idx_audit_events_action", "audit_events", ["action"])

    # ---------- Site content ----------
    if "home_faq" not in existing_tables:
        op.create_table(
            "home_faq",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("question", sa.Text(), nullable=False),
            sa.Column("answer", sa.Text(), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )
        op.create_index("idx_home_faq_order", "home_faq", ["display_order"])
    if "testimonials" not in existing_tables:
        op.create_table(
            "testimonials",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.Column("location", sa.String(255), nullable=False),
            sa.Column("rating", sa.Integer(), nullable=False, server_default="5"),
            *_timestamps(),
            sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_testimonials_rating"),
        )
    if "gallery" not in existing_tables:
        op.create_table(
            "gallery",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("image_url", sa.String(1024), nullable=False),
            sa.Column("image_path", sa.String(512), nullable=True),
            sa.Column("title", sa.String(255), nullable=True),
            sa.Column("alt_text", sa.String(255), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
        )
        op.create_index("idx_gallery_order", "gallery", ["display_order"])
    if "offer_banners" not in existing_tables:
        op.create_table(
            "offer_banners",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("image_url", sa.String(1024), nullable=False),
            sa.Column("cloudinary_public_id", sa.String(512), nullable=True),
            sa.Column("alt_title", sa.String(255), nullable=True),
            sa.Column("link_url", sa.String(1024), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_offer_banners_active_order", "offer_banners", ["is_active", "sort_order"])
    if "banner_marquee_texts" not in existing_tables:
        op.create_table(
            "banner_marquee_texts",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("text", sa.String(512), nullable=False),
            sa.Column("link_url", sa.String(1024), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_marquee_active_order", "banner_marquee_texts", ["is_active", "sort_order"])
    if "recognitions" not in existing_tables:
        op.create_table(
            "recognitions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("image_url", sa.String(1024), nullable=False),
            sa.Column("cloudinary_public_id", sa.String(512), nullable=True),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("link_url", sa.String(1024), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
        )
        op.create_index("idx_recognitions_active_order", "recognitions", ["is_active", "sort_order"])
    if "policy_documents" not in existing_tables:
        op.create_table(
            "policy_documents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("kind", sa.String(32), nullable=False),
            sa.Column("main_title", sa.String(255), nullable=False),
            sa.Column("subtitle", sa.String(512), nullable=True),
            sa.Column("main_content", sa.Text(), nullable=False),
            *_timestamps(),
            sa.CheckConstraint("kind IN ('privacy', 'terms', 'cancellation')", name="ck_policy_documents_kind"),
        )
        op.create_index("idx_policy_documents_kind", "policy_documents", ["kind", "created_at"])

    # ---------- About page ----------
    if "about_page" not in existing_tables:
        op.create_table(
            "about_page",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("about_description", sa.Text(), nullable=True),
            sa.Column("our_story_image_url", sa.String(1024), nullable=True),
            sa.Column("our_mission", sa.Text(), nullable=True),
            sa.Column("our_vision", sa.Text(), nullable=True),
            sa.Column("why_choose_us", sa.JSON(), nullable=False),
            sa.Column("appreciation_letter", sa.Text(), nullable=True),
            sa.Column("recognition_association_letter", sa.Text(), nullable=True),
            sa.Column("team_members", sa.JSON(), nullable=False),
            *_timestamps(),
        )
    if "about_page_gallery" not in existing_tables:
        op.create_table(
            "about_page_gallery",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("about_page_id", sa.Integer(), sa.ForeignKey("about_page.id", ondelete="CASCADE"), nullable=True),
            sa.Column("section_type", sa.String(64), nullable=False),
            sa.Column("image_url", sa.String(1024), nullable=False),
            sa.Column("cloudinary_public_id", sa.String(512), nullable=False),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.CheckConstraint(
                "section_type IN ('appreciation_letter', 'recognition_association_letter')",
                name="ck_about_gallery_section_type",
            ),
        )
        op.create_index("idx_about_gallery_section_order", "about_page_gallery", ["section_type", "display_order"])
    if "home_why_choose_us" not in existing_tables:
        op.create_table(
            "home_why_choose_us",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("image_url", sa.String(1024), nullable=True),
            sa.Column("items", sa.JSON(), nullable=False),
            *_timestamps(),
        )

    # ---------- Packages ----------
    if "packages" not in existing_tables:
        op.create_table(
            "packages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("package_name", sa.String(255), nullable=False),
            sa.Column("slug", sa.String(255), nullable=False, unique=True),
            sa.Column("package_description", sa.Text(), nullable=True),
            sa.Column("gallery_images", sa.JSON(), nullable=False),
            sa.Column("thumbnail_image_url", sa.String(1024), nullable=True),
            sa.Column("thumbnail_cloudinary_public_id", sa.String(512), nullable=True),
            sa.Column("document_url", sa.String(1024), nullable=True),
            sa.Column("document_cloudinary_public_id", sa.String(512), nullable=True),
            sa.Column("package_duration", sa.String(128), nullable=True),
            sa.Column("difficulty", sa.String(64), nullable=True),
            sa.Column("altitude", sa.String(128), nullable=True),
            sa.Column("departure_and_return_location", sa.String(255), nullable=True),
            sa.Column("departure_time", sa.String(128), nullable=True),
            sa.Column("trek_length", sa.String(128), nullable=True),
            sa.Column("base_camp", sa.String(255), nullable=True),
            sa.Column("itinerary", sa.JSON(), nullable=False),
            sa.Column("inclusions", sa.Text(), nullable=True),
            sa.Column("exclusions", sa.Text(), nullable=True),
            sa.Column("how_to_reach", sa.Text(), nullable=True),
            sa.Column("cancellation_policy", sa.Text(), nullable=True),
            sa.Column("refund_policy", sa.Text(), nullable=True),
            sa.Column("safety_for_trek", sa.Text(), nullable=True),
            sa.Column("faqs", sa.JSON(), nullable=False),
            sa.Column("booking_dates", sa.JSON(), nullable=False),
            sa.Column("why_choose_us", sa.JSON(), nullable=False),
            sa.Column("price", sa.Numeric(12, 2), nullable=True),
            sa.Column("discounted_price", sa.Numeric(12, 2), nullable=True),
            *_timestamps(),
            sa.CheckConstraint("price IS NULL OR price > 0", name="ck_packages_price_positive"),
            sa.CheckConstraint(
                "discounted_price IS NULL OR discounted_price > 0", name="ck_packages_discounted_price_positive"
            ),
        )
        op.create_index("idx_packages_created_at", "packages", ["created_at"])
        op.create_index("idx_packages_difficulty", "packages", ["difficulty"])

    # ---------- Enquiries ----------
    if "contact_enquiries" not in existing_tables:
        op.create_table(
            "contact_enquiries",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("full_name", sa.String(255), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("phone", sa.String(64), nullable=True),
            sa.Column("whatsapp", sa.String(64), nullable=True),
            sa.Column("message", sa.Text(), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_contact_enquiries_created_at", "contact_enquiries", ["created_at"])
    if "modal_enquiries" not in existing_tables:
        op.create_table(
            "modal_enquiries",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("full_name", sa.String(255), nullable=False),
            sa.Column("whatsapp", sa.String(64), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            *_timestamps(),
        )
        op.create_index("idx_modal_enquiries_created_at", "modal_enquiries", ["created_at"])
    if "pdf_enquiries" not in existing_tables:
        op.create_table(
            "pdf_enquiries",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("full_name", sa.String(255), nullable=False),
            sa.Column("whatsapp", sa.String(64), nullable=False),
            sa.Column("email", sa.String(320), nullable=False),
            sa.Column("pdf_url", sa.String(1024), nullable=False),
            sa.Column("package_name", sa.String(255), nullable=True),
            *_timestamps(),
        )
        op.create_index("idx_pdf_enquiries_created_at", "pdf_enquiries", ["created_at"])


def downgrade() -> None:
    """Drop every table (reverse dependency order)."""
    for table in (
        "pdf_enquiries",
        "modal_enquiries",
        "contact_enquiries",
        "packages",
        "home_why_choose_us",
        "about_page_gallery",
        "about_page",
        "policy_documents",
        "recognitions",
        "banner_marquee_texts",
        "offer_banners",
        "gallery",
        "testimonials",
        "home_faq",
        "audit_events",
        "role_permissions",
        "user_roles",
        "permissions",
        "roles",
        "users",
    ):
        op.drop_table(table)
