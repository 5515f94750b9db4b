"""
Mood tags, Google place types and archetype categories.

Google Places `types` (restaurant, cafe, park, ...) are the category vocabulary
for every candidate. AI suggestions get categories inferred from keywords.
"""

import re

# mood tag -> place types searched around a hub (most relevant first)
MOOD_PLACE_TYPES: dict[str, list[str]] = {
    "romantic": ["restaurant", "cafe", "art_gallery"],
    "foodie": ["restaurant", "cafe", "bakery"],
    "food": ["restaurant", "cafe", "bakery"],
    "chill": ["cafe", "park", "library"],
    "relax": ["cafe", "park", "spa"],
    "adventure": ["amusement_park", "bowling_alley", "tourist_attraction"],
    "fun": ["bowling_alley", "movie_theater", "amusement_park"],
    "party": ["bar", "night_club"],
    "nightlife": ["bar", "night_club"],
    "culture": ["museum", "art_gallery"],
    "nature": ["park", "tourist_attraction"],
    "shopping": ["shopping_mall"],
    "movies": ["movie_theater"],
}

DEFAULT_PLACE_TYPES = ["restaurant", "cafe", "park", "movie_theater"]

# category -> keywords found in names / descriptions of AI suggestions
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "restaurant": ("restaurant", "dinner", "lunch", "brunch", "dine", "dining", "biryani", "thali", "food"),
    "cafe": ("cafe", "café", "coffee", "tea", "dessert"),
    "bakery": ("bakery", "bake", "pastry"),
    "bar": ("bar", "pub", "brewery", "cocktail", "drinks"),
    "night_club": ("club", "dance", "dj"),
    "park": ("park", "garden", "promenade", "beach", "lake", "walk", "trail"),
    "museum": ("museum", "heritage", "history"),
    "art_gallery": ("gallery", "art", "exhibition"),
    "movie_theater": ("movie", "cinema", "film", "theatre", "theater"),
    "bowling_alley": ("bowling",),
    "amusement_park": ("arcade", "amusement", "go-kart", "karting", "trampoline", "escape room", "game"),
    "shopping_mall": ("mall", "market", "shopping", "bazaar"),
    "spa": ("spa", "massage"),
    "library": ("library", "book"),
}

FOOD_CATEGORIES = ("restaurant", "cafe", "bakery", "bar", "meal_takeaway", "food", "catering")
ADVENTURE_CATEGORIES = (
    "amusement_park",
    "bowling_alley",
    "tourist_attraction",
    "zoo",
    "aquarium",
    "stadium",
    "night_club",
    "park",
    "entertainment",
    "leisure",
    "outdoor",
)
RELAXED_CATEGORIES = ("cafe", "park", "spa", "movie_theater", "cinema", "library", "art_gallery", "gallery")

GENERIC_TYPES = {"point_of_interest", "establishment", "food", "store"}


def place_types_for(tags: list[str], limit: int) -> list[str]:
    """
    Place types to search for a group's mood tags, in tag order, padded with the
    defaults and capped at `limit`.
    """
    out: list[str] = []
    for tag in tags:
        for place_type in MOOD_PLACE_TYPES.get(tag, []):
            if place_type not in out:
                out.append(place_type)
    for place_type in DEFAULT_PLACE_TYPES:
        if len(out) >= limit:
            break
        if place_type not in out:
            out.append(place_type)
    return out[: max(0, limit)]


def infer_categories(*texts: str | None) -> list[str]:
    blob = " ".join(t for t in texts if t).lower()
    found: list[str] = []
    for category, keywords in CATEGORY_KEYWORDS.items():
        if any(re.search(rf"\b{re.escape(k)}(?:s|es)?\b", blob) for k in keywords):
            found.append(category)
    return found or ["tourist_attraction"]


def primary_category(categories: list[str]) -> str:
    for category in categories:
        if category not in GENERIC_TYPES:
            return category
    return categories[0] if categories else "other"


def has_category(categories: list[str], wanted: tuple[str, ...]) -> bool:
    """Substring match so both `cafe` and `catering.cafe` style labels count."""
    return any(w in c for c in categories for w in wanted)


def tag_satisfied(tag: str, categories: list[str], text: str) -> bool:
    """A mood tag is met by a mapped place type or by the tag word itself."""
    mapped = MOOD_PLACE_TYPES.get(tag, [])
    if any(m in categories for m in mapped):
        return True
    if tag in categories:
        return True
    return bool(re.search(rf"\b{re.escape(tag)}(?:s|es)?\b", text.lower()))
