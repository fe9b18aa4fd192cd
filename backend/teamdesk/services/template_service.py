"""Invitation template management and rendering."""
import html
import re
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from teamdesk.core.config import get_settings
from teamdesk.core.errors import ConflictError, NotFoundError
from teamdesk.models.enums import AuditAction, InvitationRole
from teamdesk.models.invitation import Invitation
from teamdesk.models.invitation_template import InvitationTemplate
from teamdesk.models.user import User
from teamdesk.services.audit_service import AuditService
from teamdesk.services.notification_service import OutboundEmail

DEFAULT_SUBJECT = "You're invited to join {inviterName}'s team"

DEFAULT_CONTENT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2>You're invited to join our team!</h2>
  <p>Hi there,</p>
  <p>{inviterName} ({inviterEmail}) has invited you to join their team as a {role}.</p>
  {customMessage}
  <p>Click the button below to accept the invitation:</p>
  <a href="{inviteUrl}" style="background-color: #3B82F6; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; display: inline-block;">Accept Invitation</a>
  <p>Or copy and paste this link into your browser:</p>
  <p><a href="{inviteUrl}">{inviteUrl}</a></p>
  <p>This invitation will expire in {ttlDays} days.</p>
</div>
"""

_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")


def _substitute(text: str, values: dict[str, str]) -> str:
    """Fill placeholders in one pass; substituted values are never rescanned."""
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), text)


def _to_plain_text(markup: str) -> str:
    return _BLANK_LINES_RE.sub("\n\n", _TAG_RE.sub("", html.unescape(markup))).strip()


class TemplateService:
    """Service for per-tenant invitation templates."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit_service = AuditService(db)
        self.settings = get_settings()

    async def create_template(
        self,
        tenant_id: UUID,
        name: str,
        role: InvitationRole,
        subject: str,
        content: str,
        is_default: bool = False,
        actor_id: UUID | None = None,
    ) -> InvitationTemplate:
        """Create a template.

        Raises:
            ConflictError: if the name is already used in the tenant
        """
        existing = await self.db.execute(
            select(InvitationTemplate.id).where(
                InvitationTemplate.tenant_id == tenant_id,
                InvitationTemplate.name == name,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Template name already exists")

        if is_default:
            await self._clear_default(tenant_id, role)

        template = InvitationTemplate(
            tenant_id=tenant_id,
            name=name,
            role=role,
            subject=subject,
            content=content,
            is_default=is_default,
            is_active=True,
        )
        self.db.add(template)
        await self.db.flush()

        await self.audit_service.log(
            tenant_id=tenant_id,
            action=AuditAction.TEMPLATE_CREATE,
            entity_type="invitation_template",
            entity_id=template.id,
            user_id=actor_id,
            diff_json={"name": name, "role": role.value, "is_default": is_default},
        )
        return template

    async def list_templates(
        self, tenant_id: UUID, role: InvitationRole | None = None
    ) -> list[InvitationTemplate]:
        """Active templates, default first then by name."""
        query = select(InvitationTemplate).where(
            InvitationTemplate.tenant_id == tenant_id,
            InvitationTemplate.is_active.is_(True),
        )
        if role is not None:
            query = query.where(InvitationTemplate.role == role)
        query = query.order_by(InvitationTemplate.is_default.desc(), InvitationTemplate.name)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_template(self, tenant_id: UUID, template_id: UUID) -> InvitationTemplate:
        result = await self.db.execute(
            select(InvitationTemplate).where(
                InvitationTemplate.id == template_id,
                InvitationTemplate.tenant_id == tenant_id,
            )
        )
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError("Template not found")
        return template

    async def update_template(
        self,
        tenant_id: UUID,
        template_id: UUID,
        changes: dict,
        actor_id: UUID | None = None,
    ) -> InvitationTemplate:
        """Apply a partial update (name, subject, content, is_default, is_active)."""
        template = await self.get_template(tenant_id, template_id)

        new_name = changes.get("name")
        if new_name is not None and new_name != template.name:
            conflict = await self.db.execute(
                select(InvitationTemplate.id).where(
                    InvitationTemplate.tenant_id == tenant_id,
                    InvitationTemplate.name == new_name,
                    InvitationTemplate.id != template_id,
                )
            )
            if conflict.scalar_one_or_none() is not None:
                raise ConflictError("Template name already exists")

        if changes.get("is_default") and not template.is_default:
            await self._clear_default(tenant_id, template.role)

        applied = {}
        for field in ("name", "subject", "content", "is_default", "is_active"):
            if changes.get(field) is not None:
                setattr(template, field, changes[field])
                applied[field] = changes[field]
        await self.db.flush()

        if applied:
            await self.audit_service.log(
                tenant_id=tenant_id,
                action=AuditAction.TEMPLATE_UPDATE,
                entity_type="invitation_template",
                entity_id=template.id,
                user_id=actor_id,
                diff_json={k: v for k, v in applied.items() if k != "content"},
            )
        return template

    async def _clear_default(self, tenant_id: UUID, role: InvitationRole) -> None:
        await self.db.execute(
            update(InvitationTemplate)
            .where(
                InvitationTemplate.tenant_id == tenant_id,
                InvitationTemplate.role == role,
                InvitationTemplate.is_default.is_(True),
            )
            .values(is_default=False)
        )

    async def _pick_template(self, invitation: Invitation) -> InvitationTemplate | None:
        if invitation.template_id is not None:
            result = await self.db.execute(
                select(InvitationTemplate).where(
                    InvitationTemplate.id == invitation.template_id,
                    InvitationTemplate.tenant_id == invitation.tenant_id,
                    InvitationTemplate.is_active.is_(True),
                )
            )
            template = result.scalar_one_or_none()
            if template is not None:
                return template

        result = await self.db.execute(
            select(InvitationTemplate).where(
                InvitationTemplate.tenant_id == invitation.tenant_id,
                InvitationTemplate.role == invitation.role,
                InvitationTemplate.is_default.is_(True),
                InvitationTemplate.is_active.is_(True),
            )
        )
        return result.scalars().first()

    def invite_url(self, token: str) -> str:
        return f"{self.settings.app_url.rstrip('/')}/invite/accept?token={token}"

    async def render_invitation(
        self, invitation: Invitation, inviter: User | None
    ) -> OutboundEmail:
        """Build the invitation e-mail for ``invitation``.

        Uses the invitation's explicit template, else the tenant default for
        the role, else the built-in template.
        """
        template = await self._pick_template(invitation)
        subject = template.subject if template else DEFAULT_SUBJECT
        content = template.content if template else DEFAULT_CONTENT

        inviter_name = inviter.full_name if inviter and inviter.full_name else "A teammate"
        inviter_email = inviter.email if inviter else ""
        custom_message = ""
        if invitation.custom_message:
            custom_message = f"<p>{html.escape(invitation.custom_message)}</p>"

        values = {
            "inviterName": html.escape(inviter_name),
            "inviterEmail": html.escape(inviter_email),
            "inviteUrl": self.invite_url(invitation.token),
            "role": invitation.role.value,
            "customMessage": custom_message,
            "ttlDays": str(self.settings.invitation_ttl_days),
        }
        body = _substitute(content, values)
        return OutboundEmail(
            to=invitation.email,
            subject=_to_plain_text(_substitute(subject, values)),
            html=body,
            text=_to_plain_text(body),
        )
