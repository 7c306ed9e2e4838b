"""Built-in business categories agents can search for.

Each category carries a display name, the merchant category code (MCC) card
networks assign to that kind of business, and the search terms providers use
to find it.
"""

BUILTIN_CATEGORIES: dict[str, dict] = {
    "auto_repair": {
        "name": "Auto Repair",
        "mcc_code": "7538",
        "search_terms": ["auto repair shop", "mechanic", "car service center"],
    },
    "auto_parts": {
        "name": "Auto Parts",
        "mcc_code": "5533",
        "search_terms": ["auto parts store", "car accessories"],
    },
    "car_wash": {
        "name": "Car Wash",
        "mcc_code": "7542",
        "search_terms": ["car wash", "auto detailing"],
    },
    "restaurant": {
        "name": "Restaurants",
        "mcc_code": "5812",
        "search_terms": ["restaurant", "diner", "family restaurant"],
    },
    "fast_food": {
        "name": "Quick Service",
        "mcc_code": "5814",
        "search_terms": ["fast food", "takeout", "pizza shop"],
    },
    "bar": {
        "name": "Bars & Taverns",
        "mcc_code": "5813",
        "search_terms": ["bar", "pub", "tavern"],
    },
    "grocery": {
        "name": "Grocery",
        "mcc_code": "5411",
        "search_terms": ["grocery store", "market", "supermarket"],
    },
    "convenience": {
        "name": "Convenience Stores",
        "mcc_code": "5499",
        "search_terms": ["convenience store", "corner store"],
    },
    "retail": {
        "name": "Retail",
        "mcc_code": "5999",
        "search_terms": ["boutique", "gift shop", "retail store"],
    },
    "clothing": {
        "name": "Clothing",
        "mcc_code": "5651",
        "search_terms": ["clothing store", "apparel boutique"],
    },
    "salon": {
        "name": "Salons & Barbers",
        "mcc_code": "7230",
        "search_terms": ["hair salon", "barber shop", "nail salon"],
    },
    "medical": {
        "name": "Medical Offices",
        "mcc_code": "8011",
        "search_terms": ["doctor office", "medical clinic", "urgent care"],
    },
    "dental": {
        "name": "Dental",
        "mcc_code": "8021",
        "search_terms": ["dentist", "dental office"],
    },
    "veterinary": {
        "name": "Veterinary",
        "mcc_code": "0742",
        "search_terms": ["veterinarian", "animal hospital"],
    },
    "home_services": {
        "name": "Home Services",
        "mcc_code": "1711",
        "search_terms": ["plumber", "hvac contractor", "electrician"],
    },
    "fitness": {
        "name": "Fitness",
        "mcc_code": "7997",
        "search_terms": ["gym", "fitness studio", "yoga studio"],
    },
}


def category_name(code: str) -> str:
    entry = BUILTIN_CATEGORIES.get(code)
    return entry["name"] if entry else code


def search_terms_for(codes: list[str]) -> list[tuple[str, str]]:
    """(category code, term) pairs for the given categories, in request order."""
    return [
        (code, term)
        for code in codes
        for term in BUILTIN_CATEGORIES.get(code, {}).get("search_terms", [])
    ]
