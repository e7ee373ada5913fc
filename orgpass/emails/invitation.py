"""Invitation email rendering."""

import os
from dataclasses import dataclass
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from orgpass.config import settings

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")

_jinja_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
)


@dataclass
class RenderedEmail:
    subject: str
    html: str


def build_invite_link(invite_token: str, email: str) -> str:
    """Link to the invitations page carrying the token and the invited email"""
    query = urlencode({"invite_token": invite_token, "email": email})
    return f"{settings.invitations_url}?{query}"


def invitee_name(email: str) -> str:
    return email.split("@")[0] or "Invitee"


def render_invite_user_email(
    invite_link: str,
    name: str,
    organization_name: str,
    invited_by: str = "",
    app_name: str | None = None,
) -> RenderedEmail:
    """
    Render the invitation email.

    Args:
        invite_link: Absolute link the invitee follows to accept
        name: How to greet the invitee
        organization_name: Organization the invitee is asked to join
        invited_by: Display name or email of the inviter
        app_name: Product name shown in the email, defaults to settings.APP_NAME

    Returns:
        Subject and HTML body
    """
    app_name = app_name or settings.APP_NAME
    subject = f"You have been invited to join {organization_name} on {app_name}"
    html = _jinja_env.get_template("invite_user.html").render(
        subject=subject,
        invite_link=invite_link,
        name=name,
        organization_name=organization_name,
        invited_by=invited_by,
        app_name=app_name,
    )
    return RenderedEmail(subject=subject, html=html)
