import logging
from typing import Optional
from urllib.parse import urlencode
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool
from bookify.config import settings

logger = logging.getLogger(__name__)


def get_ses_client():
    """Get AWS SES client"""
    return boto3.client(
        'ses',
        region_name=settings.aws_region,
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key
    )


async def send_email(
    to_email: str,
    subject: str,
    html_body: str,
    text_body: Optional[str] = None
) -> bool:
    """Send email via AWS SES"""
    message = {
        'Subject': {'Data': subject, 'Charset': 'UTF-8'},
        'Body': {
            'Html': {'Data': html_body, 'Charset': 'UTF-8'}
        }
    }

    if text_body:
        message['Body']['Text'] = {'Data': text_body, 'Charset': 'UTF-8'}

    try:
        client = get_ses_client()
        response = await run_in_threadpool(
            client.send_email,
            Source=f"Bookify <{settings.aws_ses_from_email}>",
            Destination={'ToAddresses': [to_email]},
            Message=message
        )
    except (ClientError, BotoCoreError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False

    logger.info(f"Email sent to {to_email}: {response['MessageId']}")
    return True


def build_confirmation_link(user_id: str, token: str) -> str:
    return f"{settings.frontend_url}/confirm-email?{urlencode({'userId': user_id, 'token': token})}"


def build_reset_link(token: str) -> str:
    return f"{settings.frontend_url}/reset-password?{urlencode({'token': token})}"


async def send_confirmation_email(to_email: str, username: str, user_id: str, token: str) -> bool:
    link = build_confirmation_link(user_id, token)
    html_body = f"""
        <p>Hi {username},</p>
        <p>Welcome to Bookify! Please confirm your email address to activate your account.</p>
        <p><a href="{link}">Confirm my email</a></p>
        <p>This link expires in 7 days.</p>
    """
    text_body = f"Hi {username},\n\nConfirm your Bookify account: {link}\n\nThis link expires in 7 days."
    return await send_email(to_email, "Confirm your Bookify account", html_body, text_body)


async def send_password_reset_email(to_email: str, username: str, token: str) -> bool:
    link = build_reset_link(token)
    html_body = f"""
        <p>Hi {username},</p>
        <p>We received a request to reset your Bookify password.</p>
        <p><a href="{link}">Reset my password</a></p>
        <p>This link expires in 1 hour. If you did not ask for it, ignore this email.</p>
    """
    text_body = f"Hi {username},\n\nReset your Bookify password: {link}\n\nThis link expires in 1 hour."
    return await send_email(to_email, "Reset your Bookify password", html_body, text_body)
