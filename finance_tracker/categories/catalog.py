"""
Category Catalogs

Two fixed, ordered lists of categories (expense and income) plus the
keyword table the suggester matches descriptions against.

Ids are stable strings and are referenced throughout storage, so they
must never be renumbered. Order matters: the suggester breaks score ties
in favour of the category that appears first in get_all_categories().
"""

from typing import Optional

from finance_tracker.models.finance import Category


EXPENSE_CATEGORIES: tuple[Category, ...] = (
    Category(id="1", name="Food & Dining", icon="utensils", color_tag="bg-orange-500"),
    Category(id="2", name="Transportation", icon="car", color_tag="bg-blue-500"),
    Category(id="3", name="Housing", icon="home", color_tag="bg-green-500"),
    Category(id="4", name="Entertainment", icon="tv", color_tag="bg-purple-500"),
    Category(id="5", name="Shopping", icon="shopping-bag", color_tag="bg-pink-500"),
    Category(id="6", name="Utilities", icon="zap", color_tag="bg-yellow-500"),
    Category(id="7", name="Health", icon="heart", color_tag="bg-red-500"),
    Category(id="8", name="Education", icon="book", color_tag="bg-indigo-500"),
    Category(id="9", name="Travel", icon="plane", color_tag="bg-teal-500"),
    Category(id="10", name="Other", icon="more-horizontal", color_tag="bg-gray-500"),
)

INCOME_CATEGORIES: tuple[Category, ...] = (
    Category(id="11", name="Salary", icon="briefcase", color_tag="bg-green-600"),
    Category(id="12", name="Freelance", icon="code", color_tag="bg-blue-600"),
    Category(id="13", name="Investments", icon="trending-up", color_tag="bg-purple-600"),
    Category(id="14", name="Gifts", icon="gift", color_tag="bg-pink-600"),
    Category(id="15", name="Other", icon="more-horizontal", color_tag="bg-gray-600"),
)


# Lowercase keywords matched as substrings of the lowercased description.
# The two "Other" categories have no keywords.
CATEGORY_KEYWORDS: dict[str, frozenset[str]] = {
    # Expense categories
    "1": frozenset({  # Food & Dining
        "food", "restaurant", "lunch", "dinner", "breakfast", "cafe", "coffee", "grocery",
        "groceries", "supermarket", "takeout", "meal", "snack", "pizza", "burger", "bakery",
        "deli", "market", "bar", "pub", "drink", "dining",
    }),
    "2": frozenset({  # Transportation
        "uber", "lyft", "taxi", "cab", "gas", "fuel", "petrol", "car", "auto", "vehicle",
        "bus", "train", "subway", "metro", "transport", "fare", "ride", "commute", "toll",
        "parking", "bicycle", "bike", "scooter", "rental", "maintenance", "repair", "service",
    }),
    "3": frozenset({  # Housing
        "rent", "mortgage", "home", "house", "apartment", "flat", "condo", "lease", "property",
        "real estate", "housing", "accommodation", "residence", "tenant", "landlord", "deposit",
        "maintenance", "repair", "furniture", "decor", "renovation", "improvement",
    }),
    "4": frozenset({  # Entertainment
        "movie", "netflix", "spotify", "entertainment", "theater", "cinema", "concert", "show",
        "ticket", "event", "game", "gaming", "subscription", "streaming", "music", "video",
        "play", "fun", "hobby", "leisure", "recreation", "amusement", "party", "festival",
    }),
    "5": frozenset({  # Shopping
        "shopping", "store", "mall", "retail", "purchase", "buy", "clothes", "clothing", "apparel",
        "fashion", "shoes", "accessory", "accessories", "electronics", "gadget", "device", "appliance",
        "furniture", "home goods", "decor", "gift", "online", "amazon", "ebay", "etsy",
    }),
    "6": frozenset({  # Utilities
        "utility", "utilities", "electric", "electricity", "water", "gas", "power", "energy",
        "internet", "wifi", "broadband", "phone", "mobile", "cell", "bill", "service", "provider",
        "cable", "tv", "trash", "garbage", "waste", "sewage", "heating", "cooling", "hvac",
    }),
    "7": frozenset({  # Health
        "health", "medical", "doctor", "physician", "hospital", "clinic", "dentist", "dental",
        "vision", "eye", "prescription", "medicine", "medication", "pharmacy", "drug", "vitamin",
        "supplement", "fitness", "gym", "workout", "exercise", "therapy", "counseling", "insurance",
    }),
    "8": frozenset({  # Education
        "education", "school", "college", "university", "tuition", "course", "class", "lesson",
        "training", "workshop", "seminar", "book", "textbook", "supplies", "student", "loan",
        "scholarship", "degree", "certificate", "program", "study", "learning", "teaching",
    }),
    "9": frozenset({  # Travel
        "travel", "trip", "vacation", "holiday", "flight", "plane", "airline", "hotel", "motel",
        "lodging", "accommodation", "resort", "booking", "reservation", "tour", "cruise", "beach",
        "sightseeing", "tourism", "passport", "visa", "luggage", "baggage", "souvenir",
    }),
    # Income categories
    "11": frozenset({  # Salary
        "salary", "paycheck", "wage", "income", "pay", "earnings", "compensation", "remuneration",
        "stipend", "employment", "job", "work", "career", "profession", "occupation", "bonus",
        "commission", "overtime", "allowance", "benefit",
    }),
    "12": frozenset({  # Freelance
        "freelance", "contract", "gig", "project", "client", "customer", "service", "consulting",
        "consultation", "advisor", "independent", "self-employed", "business", "entrepreneur",
        "startup", "venture", "side hustle", "moonlighting", "commission",
    }),
    "13": frozenset({  # Investments
        "investment", "dividend", "interest", "stock", "bond", "mutual fund", "etf", "security",
        "portfolio", "asset", "equity", "share", "return", "profit", "gain", "yield", "appreciation",
        "capital", "market", "trading", "broker", "crypto", "bitcoin", "ethereum",
    }),
    "14": frozenset({  # Gifts
        "gift", "present", "donation", "charity", "contribution", "grant", "scholarship", "award",
        "prize", "bonus", "inheritance", "estate", "will", "bequest", "endowment", "offering",
        "gratuity", "tip", "birthday", "holiday", "celebration", "congratulation",
    }),
}


_CATEGORIES_BY_ID: dict[str, Category] = {
    category.id: category
    for category in EXPENSE_CATEGORIES + INCOME_CATEGORIES
}

_EXPENSE_BY_ID: dict[str, Category] = {
    category.id: category for category in EXPENSE_CATEGORIES
}


def get_all_categories() -> list[Category]:
    """Expense categories followed by income categories, in catalog order."""
    return [*EXPENSE_CATEGORIES, *INCOME_CATEGORIES]


def get_category_by_id(category_id: str) -> Optional[Category]:
    return _CATEGORIES_BY_ID.get(category_id)


def get_expense_category(category_id: str) -> Optional[Category]:
    """Resolve an id against the expense catalog only (budgets track spending)."""
    return _EXPENSE_BY_ID.get(category_id)
