"""
Service providers for routes; tests override these with app.dependency_overrides.
"""
from sannu.services.email_service import EmailService
from sannu.services.image_service import ImageService


def get_email_service() -> EmailService:
    return EmailService()


def get_image_service() -> ImageService:
    return ImageService()
