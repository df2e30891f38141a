"""
메일 알림 서비스
BackgroundTasks로 응답 이후에 실행되며, 실패해도 원래 작업 결과는 바뀌지 않는다.
"""
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional
from vms.config import settings

logger = logging.getLogger(__name__)

AUTO_NOTICE = "This is an automated message. Please do not reply to this email."


def smtp_configured() -> bool:
    return bool(settings.smtp_host and settings.smtp_user and settings.smtp_password and settings.email_from)


def send_email(to_email: str, subject: str, html_body: str, text: Optional[str] = None) -> bool:
    """메일 발송 - 설정이 없으면 건너뛰고 False"""
    if not smtp_configured():
        logger.warning("Email settings are not fully configured; email to %s not sent", to_email)
        return False

    msg = MIMEMultipart("alternative")
    msg["From"] = f"Visitor Management System <{settings.email_from}>"
    msg["To"] = to_email
    msg["Subject"] = subject
    if text:
        msg.attach(MIMEText(text, "plain"))
    msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
        if settings.smtp_use_tls:
            server.starttls()
        server.login(settings.smtp_user, settings.smtp_password)
        server.sendmail(settings.email_from, [to_email], msg.as_string())
    logger.info("Email '%s' sent to %s", subject, to_email)
    return True


def build_review_email(
        full_name: str,
        visitor_name: str,
        status: str,
        approval_code: Optional[str] = None,
        comments: Optional[str] = None,
) -> tuple[str, str, str]:
    """심사 결과 메일 제목/HTML/텍스트"""
    subject = f"Visitor request for {visitor_name} {status}"
    lines = [
        f"Dear {full_name},",
        f"Your visitor request for {visitor_name} has been {status}.",
    ]
    if approval_code:
        lines.append(f"Approval code: {approval_code}")
    if comments:
        lines.append(f"Reviewer comments: {comments}")
    lines.append(AUTO_NOTICE)
    text = "\n\n".join(lines)
    html_body = "".join(f"<p>{html.escape(line)}</p>" for line in lines)
    return subject, html_body, text


def notify_request_reviewed(
        to_email: str,
        full_name: str,
        visitor_name: str,
        status: str,
        approval_code: Optional[str] = None,
        comments: Optional[str] = None,
) -> None:
    """심사 결과를 신청자에게 알림 (최대 1회, 보장하지 않음)"""
    subject, html_body, text = build_review_email(full_name, visitor_name, status, approval_code, comments)
    try:
        send_email(to_email, subject, html_body, text)
    except Exception:
        logger.exception("Failed to send review notification to %s", to_email)
