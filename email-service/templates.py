"""
templates.py — Message Renderers
=================================
One pure renderer per message type. Each returns RenderedEmail(subject, text, html)
and depends on nothing but its payload and the static Branding from config.

User-supplied values are HTML-escaped in the HTML body only. Plain-text bodies
carry them verbatim.

Adding a new message type: add a payload dataclass and a render function,
then a send_* method on the dispatcher.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape

NOT_AVAILABLE = "Not available"


@dataclass(frozen=True)
class Branding:
    from_name: str
    from_email: str
    frontend_url: str
    admin_url: str
    unsubscribe_email: str

    @property
    def unsubscribe_mailto(self) -> str:
        return f"mailto:{self.unsubscribe_email}?subject=unsubscribe"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    text: str
    html: str


# ── Payloads ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ContactFormPayload:
    name: str
    email: str
    subject: str
    message: str
    document_id: str | None = None
    created_at: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class NewsletterSignupPayload:
    email: str
    verification_token: str
    source: str
    first_name: str | None = None
    last_name: str | None = None
    source_url: str | None = None


@dataclass(frozen=True)
class NewsletterVerifiedPayload:
    email: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass(frozen=True)
class TestEmailPayload:
    __test__ = False   # not a pytest class

    to: str
    subject: str
    message: str


def display_name(first_name: str | None, last_name: str | None) -> str:
    if not first_name:
        return "there"
    return f"{first_name} {last_name or ''}".strip()


def format_submission_date(created_at: str | None) -> str:
    if not created_at:
        return NOT_AVAILABLE
    try:
        parsed = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return created_at
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def admin_panel_url(branding: Branding, document_id: str | None) -> str:
    return (f"{branding.admin_url}/admin/content-manager/collection-types/"
            f"api::contact-submission.contact-submission/{document_id or ''}")


# ── HTML base template ────────────────────────────────────────────────────────

def _html_wrap(title: str, heading: str, tagline: str, accent: str, body_inner: str,
               footer_inner: str = "") -> str:
    footer = f"""
        <tr>
          <td style="padding:16px 32px 24px;border-top:1px solid #e2e8f0;text-align:center;
                     color:#64748b;font-size:13px;">
            {footer_inner}
          </td>
        </tr>""" if footer_inner else ""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title}</title>
</head>
<body style="margin:0;padding:0;background:#ffffff;color:#333333;line-height:1.6;
             font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,Arial,sans-serif;">
  <table width="100%" cellpadding="0" cellspacing="0" style="padding:20px 0;">
    <tr><td align="center">
      <table width="600" cellpadding="0" cellspacing="0"
             style="background:#f8fafc;border-radius:8px;overflow:hidden;">
        <!-- Header -->
        <tr>
          <td style="background:{accent};color:#ffffff;padding:30px;text-align:center;">
            <h1 style="margin:0;font-size:24px;">{heading}</h1>
            <p style="margin:8px 0 0;">{tagline}</p>
          </td>
        </tr>
        <!-- Body -->
        <tr>
          <td style="padding:30px;">
            {body_inner}
          </td>
        </tr>{footer}
      </table>
    </td></tr>
  </table>
</body>
</html>"""


def _button(href: str, label: str, color: str) -> str:
    return (f'<div style="text-align:center;margin:24px 0;">'
            f'<a href="{escape(href)}" style="display:inline-block;background:{color};color:#ffffff;'
            f'padding:12px 24px;text-decoration:none;border-radius:6px;font-weight:bold;">'
            f'{label}</a></div>')


# ── Contact form ──────────────────────────────────────────────────────────────

def render_contact_welcome(p: ContactFormPayload, b: Branding) -> RenderedEmail:
    subject = f"Thank you for contacting {b.from_name}!"
    blog_url = f"{b.frontend_url}/blog"
    text = (
        f"{subject}\n\n"
        f"Hello {p.name},\n\n"
        f"Thank you for contacting {b.from_name}. We've received your message and "
        f"appreciate you taking the time to reach out to us.\n\n"
        f"Your Message Details:\n"
        f"- Subject: {p.subject}\n"
        f"- Message: {p.message}\n\n"
        f"We typically respond to inquiries within 24 hours during business days. "
        f"In the meantime, feel free to explore our latest articles and tutorials at {blog_url}\n\n"
        f"If you have any urgent questions, you can also reach us directly at {b.from_email}.\n\n"
        f"Best regards,\n"
        f"{b.from_name} Team\n\n"
        f"This is an automated response to your contact form submission. "
        f"Please do not reply to this email directly.\n"
    )
    html = _html_wrap(
        "Thank you for contacting us",
        "Thank you for reaching out!",
        "We've received your message and will get back to you soon.",
        "linear-gradient(135deg,#0ea5e9 0%,#0284c7 100%)",
        f"""
            <h2 style="margin:0 0 16px;">Hello {escape(p.name)},</h2>
            <p>Thank you for contacting <strong>{escape(b.from_name)}</strong>. We've received your
               message and appreciate you taking the time to reach out to us.</p>
            <h3>Your Message Details:</h3>
            <ul>
              <li><strong>Subject:</strong> {escape(p.subject)}</li>
              <li><strong>Message:</strong> {escape(p.message)}</li>
            </ul>
            <p>We typically respond to inquiries within 24 hours during business days.
               In the meantime, feel free to explore our latest articles and tutorials.</p>
            {_button(blog_url, "Explore Our Blog", "#0ea5e9")}
            <p>If you have any urgent questions, you can also reach us directly at
               <a href="mailto:{escape(b.from_email)}">{escape(b.from_email)}</a>.</p>
            <p>Best regards,<br>{escape(b.from_name)} Team</p>
        """,
        "<small>This is an automated response to your contact form submission. "
        "Please do not reply to this email directly.</small>",
    )
    return RenderedEmail(subject, text, html)


def render_contact_admin_notice(p: ContactFormPayload, b: Branding) -> RenderedEmail:
    subject = f"New Contact Form Submission: {p.subject}"
    submitted = format_submission_date(p.created_at)
    panel_url = admin_panel_url(b, p.document_id)
    text = (
        f"New Contact Form Submission\n\n"
        f"From: {p.name} ({p.email})\n"
        f"Subject: {p.subject}\n"
        f"Message: {p.message}\n\n"
        f"Submission Details:\n"
        f"Date: {submitted}\n"
        f"IP Address: {p.ip_address or NOT_AVAILABLE}\n"
        f"User Agent: {p.user_agent or NOT_AVAILABLE}\n"
        f"Submission ID: {p.document_id or NOT_AVAILABLE}\n\n"
        f"View in Admin Panel: {panel_url}\n"
    )

    def field_row(label: str, value: str) -> str:
        return (f'<div style="margin-bottom:15px;">'
                f'<div style="font-weight:bold;color:#374151;">{label}:</div>'
                f'<div style="background:#ffffff;padding:10px;border-radius:4px;'
                f'border-left:4px solid #0ea5e9;">{value}</div></div>')

    html = _html_wrap(
        "New Contact Form Submission",
        "New Contact Form Submission",
        "A new message has been submitted through the contact form.",
        "#dc2626",
        f"""
            {field_row("From", f"{escape(p.name)} ({escape(p.email)})")}
            {field_row("Subject", escape(p.subject))}
            {field_row("Message", escape(p.message))}
            <div style="background:#f1f5f9;padding:15px;border-radius:4px;margin-top:20px;font-size:14px;">
              <strong>Submission Details:</strong><br>
              <strong>Date:</strong> {escape(submitted)}<br>
              <strong>IP Address:</strong> {escape(p.ip_address or NOT_AVAILABLE)}<br>
              <strong>User Agent:</strong> {escape(p.user_agent or NOT_AVAILABLE)}<br>
              <strong>Submission ID:</strong> {escape(p.document_id or NOT_AVAILABLE)}
            </div>
            {_button(panel_url, "View in Admin Panel", "#0ea5e9")}
        """,
    )
    return RenderedEmail(subject, text, html)


# ── Newsletter ────────────────────────────────────────────────────────────────

def _newsletter_footer_text(b: Branding) -> str:
    year = datetime.now(timezone.utc).year
    return (
        f"---\n"
        f"This email was sent because you signed up for {b.from_name} newsletter.\n"
        f"© {year} {b.from_name}. All rights reserved.\n"
        f"Privacy Policy: {b.frontend_url}/privacy\n"
        f"Terms of Service: {b.frontend_url}/terms\n"
        f"Unsubscribe: {b.unsubscribe_mailto}\n"
    )


def _newsletter_footer_html(b: Branding) -> str:
    year = datetime.now(timezone.utc).year
    link = 'style="color:#667eea;"'
    return (
        f"<p>This email was sent because you signed up for {escape(b.from_name)} newsletter.</p>"
        f"<p>&copy; {year} {escape(b.from_name)}. All rights reserved.</p>"
        f'<p><a href="{escape(b.frontend_url)}/privacy" {link}>Privacy Policy</a> | '
        f'<a href="{escape(b.frontend_url)}/terms" {link}>Terms of Service</a> | '
        f'<a href="{escape(b.unsubscribe_mailto)}" {link}>Unsubscribe</a></p>'
    )


def render_newsletter_verification(p: NewsletterSignupPayload, verification_url: str,
                                   b: Branding) -> RenderedEmail:
    name = display_name(p.first_name, p.last_name)
    subject = f"Verify Your Newsletter Subscription - {b.from_name}"
    text = (
        f"Welcome to {b.from_name} Newsletter!\n\n"
        f"Hi {name},\n\n"
        f"Thank you for subscribing to {b.from_name} newsletter! We're excited to share "
        f"programming insights, tutorials, and tech tips with you.\n\n"
        f"To complete your subscription, please verify your email address by clicking this link:\n\n"
        f"{verification_url}\n\n"
        f"Or copy and paste the link into your browser.\n\n"
        f"IMPORTANT: This verification link will expire in 24 hours. If you don't verify your "
        f"email within this time, you'll need to sign up again.\n\n"
        f"If you didn't sign up for our newsletter, you can safely ignore this email.\n\n"
        f"Best regards,\n"
        f"{b.from_name} Team\n\n"
        f"{_newsletter_footer_text(b)}"
    )
    html = _html_wrap(
        "Verify Your Newsletter Subscription",
        f"Welcome to {escape(b.from_name)} Newsletter!",
        "One more step to complete your subscription",
        "linear-gradient(135deg,#667eea 0%,#764ba2 100%)",
        f"""
            <h2 style="margin:0 0 16px;">Hi {escape(name)},</h2>
            <p>Thank you for subscribing to {escape(b.from_name)} newsletter! We're excited to
               share programming insights, tutorials, and tech tips with you.</p>
            <p><strong>To complete your subscription, please verify your email address:</strong></p>
            {_button(verification_url, "Verify Email Address", "#667eea")}
            <p>Or copy and paste this link into your browser:</p>
            <p style="word-break:break-all;color:#667eea;">{escape(verification_url)}</p>
            <div style="background:#fff3cd;border:1px solid #ffeaa7;padding:15px;border-radius:5px;margin:20px 0;">
              <strong>Important:</strong> This verification link will expire in 24 hours.
              If you don't verify your email within this time, you'll need to sign up again.
            </div>
            <p>If you didn't sign up for our newsletter, you can safely ignore this email.</p>
            <p>Best regards,<br>{escape(b.from_name)} Team</p>
        """,
        _newsletter_footer_html(b),
    )
    return RenderedEmail(subject, text, html)


def render_newsletter_welcome(p: NewsletterVerifiedPayload, b: Branding) -> RenderedEmail:
    name = display_name(p.first_name, p.last_name)
    subject = f"Welcome to {b.from_name} Newsletter! 🎉"
    blog_url = f"{b.frontend_url}/blog"
    text = (
        f"Welcome to {b.from_name} Newsletter!\n\n"
        f"Hi {name},\n\n"
        f"Great news! Your email has been verified and you're now subscribed to "
        f"{b.from_name} newsletter.\n\n"
        f"You'll receive our latest programming insights, tutorials, and tech tips delivered "
        f"straight to your inbox.\n\n"
        f"Explore our blog: {blog_url}\n\n"
        f"We're excited to have you as part of our community!\n\n"
        f"Best regards,\n"
        f"{b.from_name} Team\n"
    )
    html = _html_wrap(
        f"Welcome to {escape(b.from_name)} Newsletter",
        f"Welcome to {escape(b.from_name)} Newsletter!",
        "Your subscription is now active",
        "linear-gradient(135deg,#667eea 0%,#764ba2 100%)",
        f"""
            <h2 style="margin:0 0 16px;">Hi {escape(name)},</h2>
            <p>Great news! Your email has been verified and you're now subscribed to
               {escape(b.from_name)} newsletter.</p>
            <p>You'll receive our latest programming insights, tutorials, and tech tips
               delivered straight to your inbox.</p>
            {_button(blog_url, "Explore Our Blog", "#667eea")}
            <p>We're excited to have you as part of our community!</p>
            <p>Best regards,<br>{escape(b.from_name)} Team</p>
        """,
    )
    return RenderedEmail(subject, text, html)


# ── Operator test message ─────────────────────────────────────────────────────

def render_test_email(p: TestEmailPayload, b: Branding, sent_at: str) -> RenderedEmail:
    text = (
        f"Test Email from {b.from_name} Email Service\n\n"
        f"{p.message}\n\n"
        f"This is a test email sent at {sent_at}"
    )
    html = _html_wrap(
        escape(p.subject),
        "Test Email",
        f"{escape(b.from_name)} Email Service",
        "#0ea5e9",
        f"""
            <p>{escape(p.message)}</p>
            <p><em>This is a test email sent at {sent_at}</em></p>
        """,
    )
    return RenderedEmail(p.subject, text, html)
