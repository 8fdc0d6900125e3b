"""
Business configuration - replaceable per deployment.

A new deployment can implement its own BusinessConfig and swap it in for
the default workshop configuration.
"""
from abc import ABC, abstractmethod
from typing import List, Dict, Any

from config.settings import settings


class BusinessConfig(ABC):
    """Abstract business configuration"""

    @abstractmethod
    def get_class_types(self) -> List[Dict[str, Any]]:
        """Seed class types"""
        pass

    @abstractmethod
    def get_expense_categories(self) -> List[str]:
        """Expense categories offered by the expense form"""
        pass

    @abstractmethod
    def get_platforms(self) -> List[str]:
        """Booking platforms an income can come from"""
        pass

    @abstractmethod
    def get_document_types(self) -> List[Dict[str, str]]:
        """Document types accepted on upload"""
        pass

    @abstractmethod
    def get_allowed_file_types(self) -> List[str]:
        """MIME types accepted on upload"""
        pass

    @abstractmethod
    def get_palette(self, name: str) -> List[str]:
        """Chart color palette by name"""
        pass

    @abstractmethod
    def get_branding_messages(self) -> Dict[str, str]:
        """User facing branding strings"""
        pass


class WorkshopConfig(BusinessConfig):
    """Craft workshop studio configuration"""

    PALETTES = {
        "category": [
            "#34d399", "#f87171", "#fbbf24", "#60a5fa",
            "#a78bfa", "#f472b6", "#facc15",
        ],
        "dashboard": [
            "#3B82F6", "#EF4444", "#10B981", "#F59E0B",
            "#8B5CF6", "#F97316", "#06B6D4", "#84CC16",
        ],
        "popularity": [
            "#3B82F6", "#EF4444", "#10B981", "#F59E0B",
            "#8B5CF6", "#F97316",
        ],
    }

    def get_class_types(self) -> List[Dict[str, Any]]:
        return [
            {"name": "Terrarium Design", "cost_per_person": 18.0},
            {"name": "Candle Making", "cost_per_person": 12.0},
            {"name": "Resin Art", "cost_per_person": 22.0},
            {"name": "Macrame", "cost_per_person": 9.0},
            {"name": "Pottery Painting", "cost_per_person": 15.0},
        ]

    def get_expense_categories(self) -> List[str]:
        return ["Recurring", "Shipping", "Miscellaneous", "Event & Consumables"]

    def get_platforms(self) -> List[str]:
        return ["Website", "Airbnb", "ClassBento", "Eventbrite", "Corporate", "Walk-in"]

    def get_document_types(self) -> List[Dict[str, str]]:
        return [
            {"value": "receipt", "label": "Receipt"},
            {"value": "invoice", "label": "Invoice"},
            {"value": "contract", "label": "Contract"},
            {"value": "photo", "label": "Photo"},
            {"value": "other", "label": "Other"},
        ]

    def get_allowed_file_types(self) -> List[str]:
        return [
            "image/jpeg", "image/png", "image/gif", "image/webp",
            "application/pdf",
            "application/msword",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            "application/vnd.ms-excel",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "text/plain", "text/csv",
        ]

    def get_palette(self, name: str) -> List[str]:
        return list(self.PALETTES.get(name, self.PALETTES["dashboard"]))

    def get_branding_messages(self) -> Dict[str, str]:
        company = settings.company_name
        domain = settings.allowed_email_domains[-1] if settings.allowed_email_domains else "example.com"
        return {
            "login_title": settings.app_name,
            "signup_title": f"Join {company}",
            "email_validation_message": f"Must be a company email (e.g., example@{domain})",
            "signup_restriction_message": f"You must sign up with a company email (e.g., example@{domain})",
            "report_footer": f"{company} {settings.app_name} - Financial Report",
        }


# global business configuration (can be replaced in app.py)
business_config: BusinessConfig = WorkshopConfig()
