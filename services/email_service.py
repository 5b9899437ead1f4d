import logging
import os

import boto3
from botocore.exceptions import ClientError
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import (
    AWS_ACCESS_KEY,
    AWS_REGION,
    AWS_SECRET_ACCESS_KEY,
    AWS_SES_SENDER_EMAIL,
    EMAIL_BACKEND,
    OTP_LIFETIME_MINUTES,
)
from errors import NotificationError

logger = logging.getLogger("event_booking_api.email")

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

# Set up Jinja env
env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html", "xml"]),
)

template = env.get_template("email_verification_code.html.jinja")

SUBJECTS = {
    "registration": "Verify your email address",
    "reset": "Your password reset code",
}

ses = None
if EMAIL_BACKEND == "ses":
    ses = boto3.client(
        "ses",
        region_name=AWS_REGION,
        aws_access_key_id=str(AWS_ACCESS_KEY),
        aws_secret_access_key=str(AWS_SECRET_ACCESS_KEY),
    )


def send_verification_email(email: str, otp: str, purpose: str = "registration"):
    if ses is None:
        # Development backend: no mail leaves the process
        logger.info(f"Verification code for {email} ({purpose}): {otp}")
        return {"MessageId": None}

    html_body = template.render(otp=otp, lifetime=OTP_LIFETIME_MINUTES, purpose=purpose)
    text_body = f"Your verification code is: {otp}. This code expires in {OTP_LIFETIME_MINUTES} minutes."

    try:
        resp = ses.send_email(
            Source=AWS_SES_SENDER_EMAIL,
            Destination={"ToAddresses": [email]},
            Message={
                "Subject": {"Data": SUBJECTS.get(purpose, SUBJECTS["registration"])},
                "Body": {
                    "Html": {"Data": html_body},
                    "Text": {"Data": text_body},
                },
            },
        )
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "Unknown")
        logger.exception(f"SES error when sending verification email to {email}: {code}")
        raise NotificationError(f"Email send failed: {code}")

    logger.info(
        f"Verification email sent: {email}, Message ID: {resp.get('MessageId')}"
    )
    return resp
