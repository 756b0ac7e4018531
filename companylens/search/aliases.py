# companylens/search/aliases.py
"""
Static alias tables used to build the vocabulary.

Keys are normalized (lowercase, single-spaced, edge punctuation stripped)
exactly as the extractor normalizes query tokens. Values are the canonical
stored values of the companies table.
"""

# --- Default vocabulary values (used when no database is available) ---
BATCH_SEASONS = ("Winter", "Spring", "Summer", "Fall")
BATCH_FIRST_YEAR = 2005
BATCH_LAST_YEAR = 2026

DEFAULT_VOCABULARY_VALUES = {
    "batches": [
        f"{season} {year}"
        for year in range(BATCH_FIRST_YEAR, BATCH_LAST_YEAR + 1)
        for season in BATCH_SEASONS
    ],
    "stages": ["Early", "Growth", "Late"],
    "statuses": ["Active", "Acquired", "Inactive", "Public"],
    "regions": [
        "United States of America",
        "America / Canada",
        "Canada",
        "Europe",
        "United Kingdom",
        "Latin America",
        "South Asia",
        "India",
        "Southeast Asia",
        "East Asia",
        "Africa",
        "Middle East and North Africa",
        "Oceania",
        "Remote",
        "Partly Remote",
    ],
}

# --- Batches: season word -> short prefixes ("w24", "sp25", "x25") ---
BATCH_SEASON_PREFIXES = {
    "winter": ("w", ),
    "summer": ("s", ),
    "fall": ("f", ),
    "spring": ("sp", "x"),
}

# --- Stages ---
STAGE_ALIASES = {
    "early stage": "Early",
    "early-stage": "Early",
    "seed": "Early",
    "seed stage": "Early",
    "seed-stage": "Early",
    "pre-seed": "Early",
    "preseed": "Early",
    "series a": "Early",
    "growth stage": "Growth",
    "growth-stage": "Growth",
    "series b": "Growth",
    "series c": "Growth",
    "scaleup": "Growth",
    "scale-up": "Growth",
    "late stage": "Late",
    "late-stage": "Late",
    "pre-ipo": "Late",
}

# --- Statuses (multi-word idioms are matched before single keywords) ---
STATUS_ALIASES = {
    "went public": "Public",
    "gone public": "Public",
    "publicly traded": "Public",
    "ipo": "Public",
    "ipo'd": "Public",
    "shut down": "Inactive",
    "shutting down": "Inactive",
    "shutdown": "Inactive",
    "out of business": "Inactive",
    "no longer active": "Inactive",
    "defunct": "Inactive",
    "got acquired": "Acquired",
    "been acquired": "Acquired",
    "were acquired": "Acquired",
    "was acquired": "Acquired",
}

# Literal status that only counts when nothing else indicates a status
WEAK_STATUS = "Active"

# --- Regions (one alias may expand to several stored regions) ---
REGION_ALIASES = {
    "usa": ("United States of America", ),
    "u.s": ("United States of America", ),
    "u.s.a": ("United States of America", ),
    "united states": ("United States of America", ),
    "america": ("United States of America", ),
    "american": ("United States of America", ),
    "north america": ("United States of America", "Canada",
                      "America / Canada"),
    "canadian": ("Canada", ),
    "uk": ("United Kingdom", ),
    "britain": ("United Kingdom", ),
    "british": ("United Kingdom", ),
    "england": ("United Kingdom", ),
    "eu": ("Europe", ),
    "european": ("Europe", ),
    "latam": ("Latin America", ),
    "south america": ("Latin America", ),
    "latin american": ("Latin America", ),
    "indian": ("India", ),
    "southeast asian": ("Southeast Asia", ),
    "sea region": ("Southeast Asia", ),
    "african": ("Africa", ),
    "mena": ("Middle East and North Africa", ),
    "middle east": ("Middle East and North Africa", ),
    "australia": ("Oceania", ),
    "new zealand": ("Oceania", ),
    "anz": ("Oceania", ),
    "remote-first": ("Remote", ),
    "fully remote": ("Remote", ),
}

# --- Cities (only matched after "in" / "based in" or at query start) ---
LOCATION_ALIASES = {
    "sf": "San Francisco",
    "san fran": "San Francisco",
    "san francisco": "San Francisco",
    "nyc": "New York",
    "ny": "New York",
    "new york": "New York",
    "new york city": "New York",
    "la": "Los Angeles",
    "los angeles": "Los Angeles",
    "boston": "Boston",
    "seattle": "Seattle",
    "austin": "Austin",
    "chicago": "Chicago",
    "miami": "Miami",
    "denver": "Denver",
    "palo alto": "Palo Alto",
    "mountain view": "Mountain View",
    "london": "London",
    "berlin": "Berlin",
    "paris": "Paris",
    "amsterdam": "Amsterdam",
    "toronto": "Toronto",
    "vancouver": "Vancouver",
    "bangalore": "Bengaluru",
    "bengaluru": "Bengaluru",
    "singapore": "Singapore",
    "lagos": "Lagos",
    "mexico city": "Mexico City",
    "sao paulo": "São Paulo",
    "são paulo": "São Paulo",
}

# --- Hiring ---
HIRING_PHRASES = (
    "actively hiring",
    "currently hiring",
    "now hiring",
    "are hiring",
    "is hiring",
    "hiring",
    "with open roles",
    "open roles",
    "open positions",
    "job openings",
    "with jobs",
)

NOT_HIRING_PHRASES = (
    "not currently hiring",
    "no longer hiring",
    "not hiring",
    "isn't hiring",
    "aren't hiring",
)

# --- Nonprofit ---
NONPROFIT_PHRASES = (
    "not for profit",
    "not-for-profit",
    "non profit",
    "non-profit",
    "non-profits",
    "nonprofit",
    "nonprofits",
    "charity",
    "charities",
    "ngo",
    "ngos",
)

# --- Residual query cleanup ---
STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "for", "in", "on", "at", "to",
    "with", "that", "which", "who", "whose", "are", "is", "was", "were",
    "be", "been", "by", "from", "as", "about", "into", "show", "me", "find",
    "list", "give", "get", "some", "any", "all", "based", "located", "like",
    "i", "we", "want", "looking", "please", "their", "them", "they", "it",
    "its", "this", "these", "those", "do", "does",
})
