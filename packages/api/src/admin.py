# This project was developed with assistance from AI tools.
"""
SQLAdmin configuration for database administration UI

Access the admin panel at: http://localhost:8000/admin

When AUTH_DISABLED=false, requires admin credentials via login form.
When AUTH_DISABLED=true, admin panel is open (dev mode).

Policy status and actor completion are read-only here: those only change
through the API so that every change is validated and logged.
"""

from db import (
    ActorDocument,
    ActorReference,
    Aval,
    Contract,
    Investigation,
    JointObligor,
    Landlord,
    Package,
    Policy,
    PolicyActivity,
    Tenant,
)
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy import create_engine
from starlette.requests import Request
from starlette.responses import Response

from .core.config import settings

# SQLAdmin requires a sync engine; derive from the async DATABASE_URL
_sync_url = settings.DATABASE_URL.replace("+asyncpg", "")
engine = create_engine(_sync_url, echo=False)


class AdminAuth(AuthenticationBackend):
    """Session-based auth gate for SQLAdmin.

    When AUTH_DISABLED=true, authenticate() always returns True (dev mode).
    Otherwise, requires login with SQLADMIN_USER / SQLADMIN_PASSWORD.
    """

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = form.get("username")
        password = form.get("password")
        if username == settings.SQLADMIN_USER and password == settings.SQLADMIN_PASSWORD:
            request.session.update({"admin_authenticated": True})
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> Response | bool:
        if settings.AUTH_DISABLED:
            return True
        return request.session.get("admin_authenticated", False)


class PolicyAdmin(ModelView, model=Policy):
    column_list = [
        Policy.id,
        Policy.policy_number,
        Policy.status,
        Policy.guarantor_type,
        Policy.rent_amount,
        Policy.created_by,
        Policy.created_at,
    ]
    column_searchable_list = [Policy.policy_number, Policy.created_by]
    column_sortable_list = [Policy.id, Policy.status, Policy.created_at]
    column_default_sort = [(Policy.created_at, True)]
    form_columns = [Policy.property_address, Policy.review_notes]
    can_create = False
    can_delete = False
    name = "Policy"
    name_plural = "Policies"
    icon = "fa-solid fa-file-contract"


class _ActorAdmin(ModelView):
    can_create = False
    can_edit = False
    can_delete = False


class LandlordAdmin(_ActorAdmin, model=Landlord):
    column_list = [
        Landlord.id,
        Landlord.policy_id,
        Landlord.is_primary,
        Landlord.email,
        Landlord.information_complete,
        Landlord.verification_status,
        Landlord.archived_at,
    ]
    column_searchable_list = [Landlord.email, Landlord.company_name, Landlord.paternal_last_name]
    name = "Landlord"
    name_plural = "Landlords"
    icon = "fa-solid fa-house-user"


class TenantAdmin(_ActorAdmin, model=Tenant):
    column_list = [
        Tenant.id,
        Tenant.policy_id,
        Tenant.email,
        Tenant.information_complete,
        Tenant.verification_status,
    ]
    column_searchable_list = [Tenant.email, Tenant.company_name, Tenant.paternal_last_name]
    name = "Tenant"
    name_plural = "Tenants"
    icon = "fa-solid fa-user"


class JointObligorAdmin(_ActorAdmin, model=JointObligor):
    column_list = [
        JointObligor.id,
        JointObligor.policy_id,
        JointObligor.email,
        JointObligor.guarantee_method,
        JointObligor.information_complete,
        JointObligor.archived_at,
    ]
    name = "Joint Obligor"
    name_plural = "Joint Obligors"
    icon = "fa-solid fa-user-shield"


class AvalAdmin(_ActorAdmin, model=Aval):
    column_list = [
        Aval.id,
        Aval.policy_id,
        Aval.email,
        Aval.property_value,
        Aval.information_complete,
        Aval.archived_at,
    ]
    name = "Aval"
    name_plural = "Avals"
    icon = "fa-solid fa-handshake"


class ActorReferenceAdmin(_ActorAdmin, model=ActorReference):
    column_list = [
        ActorReference.id,
        ActorReference.policy_id,
        ActorReference.actor_role,
        ActorReference.actor_id,
        ActorReference.reference_type,
        ActorReference.name,
        ActorReference.phone,
    ]
    name = "Reference"
    name_plural = "References"
    icon = "fa-solid fa-address-book"


class ActorDocumentAdmin(ModelView, model=ActorDocument):
    column_list = [
        ActorDocument.id,
        ActorDocument.policy_id,
        ActorDocument.actor_role,
        ActorDocument.actor_id,
        ActorDocument.category,
        ActorDocument.validation_status,
        ActorDocument.created_at,
    ]
    column_sortable_list = [ActorDocument.id, ActorDocument.category, ActorDocument.validation_status]
    column_default_sort = [(ActorDocument.created_at, True)]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Document"
    name_plural = "Documents"
    icon = "fa-solid fa-file-upload"


class InvestigationAdmin(ModelView, model=Investigation):
    column_list = [
        Investigation.id,
        Investigation.policy_id,
        Investigation.verdict,
        Investigation.completed_by,
        Investigation.completed_at,
    ]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Investigation"
    name_plural = "Investigations"
    icon = "fa-solid fa-magnifying-glass"


class ContractAdmin(ModelView, model=Contract):
    column_list = [
        Contract.id,
        Contract.policy_id,
        Contract.is_current,
        Contract.signed_at,
        Contract.created_at,
    ]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Contract"
    name_plural = "Contracts"
    icon = "fa-solid fa-file-signature"


class PolicyActivityAdmin(ModelView, model=PolicyActivity):
    column_list = [
        PolicyActivity.id,
        PolicyActivity.created_at,
        PolicyActivity.policy_id,
        PolicyActivity.action,
        PolicyActivity.performed_by_type,
        PolicyActivity.performed_by_id,
    ]
    column_sortable_list = [PolicyActivity.id, PolicyActivity.created_at, PolicyActivity.action]
    column_default_sort = [(PolicyActivity.created_at, True)]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Activity"
    name_plural = "Activity Log"
    icon = "fa-solid fa-shield-alt"


class PackageAdmin(ModelView, model=Package):
    column_list = [
        Package.id,
        Package.name,
        Package.price,
        Package.percentage,
        Package.min_amount,
        Package.is_active,
    ]
    column_sortable_list = [Package.id, Package.price]
    form_excluded_columns = [Package.created_at, Package.updated_at]
    name = "Package"
    name_plural = "Packages"
    icon = "fa-solid fa-box"


def setup_admin(app):
    """Set up SQLAdmin and mount it to the FastAPI app."""
    auth_backend = AdminAuth(
        secret_key=settings.SQLADMIN_SECRET_KEY,
    )
    admin = Admin(app, engine, title="Rent Guard Admin", authentication_backend=auth_backend)

    admin.add_view(PolicyAdmin)
    admin.add_view(LandlordAdmin)
    admin.add_view(TenantAdmin)
    admin.add_view(JointObligorAdmin)
    admin.add_view(AvalAdmin)
    admin.add_view(ActorReferenceAdmin)
    admin.add_view(ActorDocumentAdmin)
    admin.add_view(InvestigationAdmin)
    admin.add_view(ContractAdmin)
    admin.add_view(PolicyActivityAdmin)
    admin.add_view(PackageAdmin)

    return admin
