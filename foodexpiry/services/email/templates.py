"""
Email bodies for every message the delivery gateway sends.

Rendering is deterministic: the output depends only on the arguments, so the
same items and date always produce the same subject, text and HTML.
"""

from datetime import date
from html import escape
from typing import List, Sequence

from foodexpiry.config.settings import settings
from foodexpiry.schemas.email_schemas import RenderedEmail
from foodexpiry.schemas.notification_schemas import ItemWithStatus
from foodexpiry.services.expiration import split_by_status

HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <style>
    body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; }}
    .header {{ background: #22c55e; padding: 20px; color: white; border-radius: 8px 8px 0 0; }}
    .content {{ padding: 20px; background-color: #f9f9f9; border-radius: 0 0 8px 8px; }}
    .footer {{ text-align: center; margin-top: 20px; font-size: 12px; color: #777; }}
    .expired {{ color: #dc2626; }}
    .expiring-soon {{ color: #ea580c; }}
    .fresh {{ color: #22c55e; }}
    .code {{ background-color: #f5f5f5; padding: 15px; text-align: center; font-size: 24px; font-weight: bold; letter-spacing: 5px; }}
  </style>
</head>
<body>
  <div class="header"><h1>{title}</h1></div>
  <div class="content">
{content}
  </div>
  <div class="footer"><p>{footer}</p></div>
</body>
</html>
"""

PREFERENCES_FOOTER = (
    "This is an automated message from {app_name}. To change your notification "
    "preferences, visit the Settings page in your {app_name} account."
)


def describe_days(days_until_expiration: int) -> str:
    """Human wording for a signed day delta, e.g. 'expired 2 days ago'."""
    if days_until_expiration == 0:
        return "expires today"
    count = abs(days_until_expiration)
    unit = "day" if count == 1 else "days"
    if days_until_expiration < 0:
        return f"expired {count} {unit} ago"
    return f"expires in {count} {unit}"


def _item_line(item: ItemWithStatus) -> str:
    return f"- {item.name} - {describe_days(item.days_until_expiration)} ({item.quantity} {item.unit})"


def _item_html(item: ItemWithStatus, css_class: str) -> str:
    return (
        f'      <li class="{css_class}"><strong>{escape(item.name)}</strong> - '
        f"{describe_days(item.days_until_expiration)} ({item.quantity} {escape(item.unit)})</li>"
    )


def _item_sections(
    expired: Sequence[ItemWithStatus], expiring_soon: Sequence[ItemWithStatus]
) -> tuple:
    text_parts: List[str] = []
    html_parts: List[str] = []
    for heading, items, css_class in (
        ("Expired Items", expired, "expired"),
        ("Expiring Soon", expiring_soon, "expiring-soon"),
    ):
        if not items:
            continue
        text_parts.append(f"{heading.upper()} ({len(items)}):")
        text_parts.extend(_item_line(item) for item in items)
        text_parts.append("")
        html_parts.append(f"    <h2>{heading} ({len(items)})</h2>")
        html_parts.append("    <ul>")
        html_parts.extend(_item_html(item, css_class) for item in items)
        html_parts.append("    </ul>")
    return "\n".join(text_parts), "\n".join(html_parts)


def _wrap_html(title: str, content_lines: List[str], footer: str) -> str:
    return HTML_LAYOUT.format(
        title=escape(title), content="\n".join(content_lines), footer=escape(footer)
    )


def render_expiration_digest(
    expired: Sequence[ItemWithStatus],
    expiring_soon: Sequence[ItemWithStatus],
    app_name: str = settings.NAME,
    app_url: str = settings.APP_URL,
) -> RenderedEmail:
    subject = f"{app_name} Alert: {len(expired)} expired and {len(expiring_soon)} expiring soon"
    footer = PREFERENCES_FOOTER.format(app_name=app_name)
    sections_text, sections_html = _item_sections(expired, expiring_soon)

    text = "\n".join(
        [
            f"{app_name} Notification",
            "",
            "Hello,",
            "",
            "We wanted to let you know about the following items in your food inventory:",
            "",
            sections_text,
            "Please take action on these items to reduce food waste.",
            "",
            f"Visit your inventory at: {app_url}",
            "",
            footer,
        ]
    )
    html = _wrap_html(
        f"{app_name} Notification",
        [
            "    <p>Hello,</p>",
            "    <p>We wanted to let you know about the following items in your food inventory:</p>",
            sections_html,
            "    <p>Please take action on these items to reduce food waste.</p>",
            f'    <p><a href="{escape(app_url)}">View Your Inventory</a></p>',
        ],
        footer,
    )
    return RenderedEmail(subject=subject, text=text, html=html)


def render_weekly_summary(
    items: Sequence[ItemWithStatus],
    today: date,
    app_name: str = settings.NAME,
    app_url: str = settings.APP_URL,
) -> RenderedEmail:
    expired, expiring_soon, fresh = split_by_status(items)
    subject = f"Your Weekly {app_name} Summary - {today.isoformat()}"
    footer = (
        "This weekly summary is sent based on your notification preferences. "
        f"To change your preferences, visit the Settings page in your {app_name} account."
    )

    actions = []
    if expiring_soon:
        actions.append(f"ACTION NEEDED: You have {len(expiring_soon)} items expiring soon.")
    if expired:
        actions.append(f"ACTION NEEDED: You have {len(expired)} expired items to take care of.")

    text = "\n".join(
        [
            f"Your Weekly {app_name} Summary",
            "",
            "Hello,",
            "",
            "Here's your weekly summary of your food inventory status:",
            "",
            f"- Fresh Items: {len(fresh)}",
            f"- Expiring Soon: {len(expiring_soon)}",
            f"- Expired: {len(expired)}",
            "",
            f"You currently have {len(items)} items in your inventory.",
            "",
            *actions,
            "",
            f"Visit your inventory at: {app_url}",
            "",
            footer,
        ]
    )
    html = _wrap_html(
        f"Your Weekly {app_name} Summary",
        [
            "    <p>Hello,</p>",
            "    <p>Here's your weekly summary of your food inventory status:</p>",
            "    <ul>",
            f'      <li class="fresh">Fresh Items: {len(fresh)}</li>',
            f'      <li class="expiring-soon">Expiring Soon: {len(expiring_soon)}</li>',
            f'      <li class="expired">Expired: {len(expired)}</li>',
            "    </ul>",
            f"    <p>You currently have {len(items)} items in your inventory.</p>",
            *(f"    <p><strong>{escape(action)}</strong></p>" for action in actions),
            f'    <p><a href="{escape(app_url)}">View Your Inventory</a></p>',
        ],
        footer,
    )
    return RenderedEmail(subject=subject, text=text, html=html)


def render_test_notification(
    expired: Sequence[ItemWithStatus],
    expiring_soon: Sequence[ItemWithStatus],
    app_name: str = settings.NAME,
) -> RenderedEmail:
    subject = f"{app_name} Test Notification"
    intro = (
        f"This is a test email from your {app_name} application. If you're receiving "
        "this, your email notifications are correctly configured!"
    )
    footer = f"This is a test message from {app_name}. You can view your full inventory in the app."

    if expired or expiring_soon:
        sections_text, sections_html = _item_sections(expired, expiring_soon)
        summary_text = "Here's a summary of items in your inventory that need attention:\n\n" + sections_text
        summary_html = (
            "    <p>Here's a summary of items in your inventory that need attention:</p>\n"
            + sections_html
        )
    else:
        nothing = (
            "You currently have no expired or expiring items in your inventory. "
            "Great job managing your food!"
        )
        summary_text = nothing
        summary_html = f"    <p>{nothing}</p>"

    text = "\n".join(
        [subject, "", "Hello,", "", intro, "", summary_text, "", f"Thank you for using {app_name}!", "", footer]
    )
    html = _wrap_html(
        subject,
        [
            "    <p>Hello,</p>",
            f"    <p>{escape(intro)}</p>",
            summary_html,
            f"    <p>Thank you for using {escape(app_name)}!</p>",
        ],
        footer,
    )
    return RenderedEmail(subject=subject, text=text, html=html)


def render_verification_code(
    code: str, ttl_minutes: int, app_name: str = settings.NAME
) -> RenderedEmail:
    subject = f"{code} is your {app_name} verification code"
    text = (
        f"Your verification code for {app_name} is: {code}. "
        f"This code will expire in {ttl_minutes} minutes."
    )
    footer = f"This is an automated email from {app_name}. Please do not reply to this email."
    html = _wrap_html(
        f"Verify Your Email for {app_name}",
        [
            f"    <p>Thank you for registering with {escape(app_name)}! To complete your "
            "registration, please use the following verification code:</p>",
            f'    <div class="code">{escape(code)}</div>',
            f"    <p>This code will expire in {ttl_minutes} minutes.</p>",
            "    <p>If you didn't request this code, you can safely ignore this email.</p>",
        ],
        footer,
    )
    return RenderedEmail(subject=subject, text=text, html=html)


def render_password_reset_code(
    code: str, ttl_minutes: int, app_name: str = settings.NAME
) -> RenderedEmail:
    subject = f"{app_name} password reset code"
    text = (
        f"Use the code {code} to reset your {app_name} password. "
        f"This code will expire in {ttl_minutes} minutes. "
        "If you didn't request a password reset, you can safely ignore this email."
    )
    footer = f"This is an automated email from {app_name}. Please do not reply to this email."
    html = _wrap_html(
        f"Reset Your {app_name} Password",
        [
            "    <p>We received a request to reset your password. Use the following code:</p>",
            f'    <div class="code">{escape(code)}</div>',
            f"    <p>This code will expire in {ttl_minutes} minutes.</p>",
            "    <p>If you didn't request a password reset, you can safely ignore this email.</p>",
        ],
        footer,
    )
    return RenderedEmail(subject=subject, text=text, html=html)
