"""Fixed category and use-case taxonomies."""

from typing import List

from promptlib.models.prompt import Category

CATEGORIES: List[Category] = [
    Category(id="real-estate", name="Real estate", icon="Business"),
    Category(id="accounting", name="Accounting", icon="AccountBalance"),
    Category(id="marketing", name="Marketing", icon="Campaign"),
    Category(id="legal", name="Legal", icon="Gavel"),
    Category(id="hr", name="HR & recruiting", icon="People"),
    Category(id="sales", name="Sales", icon="Handshake"),
    Category(id="support", name="Customer support", icon="SupportAgent"),
    Category(id="engineering", name="IT & engineering", icon="Code"),
    Category(id="education", name="Education", icon="School"),
    Category(id="healthcare", name="Healthcare", icon="LocalHospital"),
    Category(id="restaurant", name="Food & restaurant", icon="Restaurant"),
    Category(id="manufacturing", name="Manufacturing", icon="Factory"),
    Category(id="retail", name="Retail & e-commerce", icon="ShoppingCart"),
    Category(id="finance", name="Finance", icon="AccountBalanceWallet"),
    Category(id="consulting", name="Consulting", icon="BusinessCenter"),
    Category(id="creative", name="Creative", icon="Palette"),
    Category(id="pr", name="PR & communications", icon="CampaignOutlined"),
    Category(id="other", name="Other", icon="Star"),
]

USE_CASES = (
    "writing",
    "analysis",
    "communication",
    "planning",
    "research",
    "creative",
    "automation",
    "learning",
)

_BY_ID = {c.id: c for c in CATEGORIES}


def get_category(category_id: str) -> Category:
    """Category for an id; unknown ids display as `other`."""
    return _BY_ID.get(category_id) or _BY_ID["other"]
