from __future__ import annotations

import re
from os.path import abspath, join
from types import MappingProxyType

# [PATHS]
###############################################################################
ROOT_DIR = abspath(join(__file__, "../../../.."))
PROJECT_DIR = join(ROOT_DIR, "RXMATCH")
SETTING_PATH = join(PROJECT_DIR, "setup", "settings")
RSC_PATH = join(PROJECT_DIR, "resources")
DATA_PATH = join(RSC_PATH, "database")
SOURCES_PATH = join(DATA_PATH, "sources")
LOGS_PATH = join(RSC_PATH, "logs")
ENV_FILE_PATH = join(PROJECT_DIR, "setup", ".env")
DATABASE_FILENAME = "sqlite.db"
PRODUCTS_SOURCE_FILE = join(SOURCES_PATH, "products.csv")

###############################################################################
SERVER_CONFIGURATION_FILE = join(SETTING_PATH, "server_configurations.json")
CONFIGURATION_PATH_VARIABLE = "RXMATCH_CONFIG_PATH"

# [ENDPOINTS]
###############################################################################
PRESCRIPTIONS_API_URL = "/prescriptions"

# [DATA SERIALIZATION]
###############################################################################
PRODUCTS_TABLE = "PRODUCTS"
PRODUCTS_COLUMNS = [
    "id",
    "name",
    "description",
    "manufacturer",
    "generic_name",
    "strength",
    "dosage_form",
    "pack_size",
    "price",
    "mrp",
    "discount_percentage",
    "in_stock",
    "stock_quantity",
    "requires_prescription",
    "is_active",
    "image_urls",
]

# [MEDICINE NAME VOCABULARY]
###############################################################################
ABBREVIATIONS = MappingProxyType(
    {
        "tab": "tablet",
        "tabs": "tablets",
        "cap": "capsule",
        "caps": "capsules",
        "mg": "mg",
        "mcg": "mcg",
        "ml": "ml",
        "gm": "gram",
        "g": "gram",
        "iu": "IU",
        "od": "once daily",
        "bd": "twice daily",
        "tid": "three times daily",
        "qid": "four times daily",
    }
)

# Order matters: the first pattern that matches wins.
DOSAGE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(\d+(?:\.\d+)?)\s*(mg|mcg|g|gm|ml|iu|units?)\b", re.IGNORECASE),
    re.compile(
        r"(\d+(?:\.\d+)?)\s*(milligram|microgram|gram|milliliter)\b", re.IGNORECASE
    ),
    re.compile(r"(\d+)\s*(tablet|capsule|tab|cap)s?\b", re.IGNORECASE),
)

NON_MEDICINE_WORDS = frozenset(
    {
        "patient",
        "doctor",
        "date",
        "prescription",
        "pharmacy",
        "address",
        "phone",
        "email",
        "signature",
        "stamp",
        "morning",
        "evening",
        "night",
        "before",
        "after",
        "food",
        "page",
        "total",
        "amount",
        "quantity",
        "instructions",
    }
)

OCR_DISALLOWED_CHARS_RE = re.compile(r"[^\w\s.\-()]")
OCR_DIMENSION_RE = re.compile(r"\b\d+\s*x\s*\d+\b", re.IGNORECASE)
OCR_PAGE_REFERENCE_RE = re.compile(r"\b(?:page|pg)\s*\d+\b", re.IGNORECASE)
OCR_DATE_RE = re.compile(r"\b\d{1,4}[-/.]\d{1,2}[-/.]\d{2,4}\b")

VARIATION_ROLE_PREFIX_RE = re.compile(
    r"^(?:dr\.?|mr\.?|tablet|capsule|syrup)\s+", re.IGNORECASE
)
VARIATION_FORM_SUFFIX_RE = re.compile(
    r"\s+(?:tablet|capsule|syrup|injection)$", re.IGNORECASE
)

# [MATCH TYPES AND REASONS]
###############################################################################
MATCH_TYPES = ("exact", "prefix", "partial", "generic", "fuzzy", "none")
UNMATCHED_REASONS = ("not_found", "search_error", "invalid_name")

RECOVERABLE_ERROR_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"network",
        r"connection",
        r"timeout",
        r"timed out",
        r"temporar",
        r"retry",
        r"rate limit",
    )
)
