"""
Fixed constants of the matching and social layer.
"""

# ============================================
# Compatibility scoring
# ============================================

INTEREST_POINTS_PER_SHARED = 15
INTEREST_SCORE_CAP = 60
SAME_COMPANY_SCORE = 20
COMPLEMENTARY_ROLE_SCORE = 25
MAX_MATCH_SCORE = 100

# Role category -> keywords matched against the words of a position.
# Multi-word keywords match as phrases. The first matching category wins.
ROLE_CATEGORY_KEYWORDS = (
    ("investor", ("investor", "venture", "vc", "angel")),
    ("founder", ("founder", "cofounder", "ceo", "owner")),
    ("design", ("design", "designer", "ux", "ui", "illustrator", "creative")),
    ("product", ("product", "pm")),
    ("marketing", ("marketing", "growth", "brand", "content")),
    ("sales", ("sales", "business development", "bd", "account executive")),
    ("builder", (
        "builder", "engineer", "engineering", "developer", "programmer",
        "cto", "architect", "data scientist",
    )),
)

# Unordered pairs of role categories that complement each other.
COMPLEMENTARY_ROLE_PAIRS = frozenset([
    frozenset(["builder", "design"]),
    frozenset(["builder", "product"]),
    frozenset(["design", "product"]),
    frozenset(["founder", "investor"]),
    frozenset(["founder", "builder"]),
    frozenset(["sales", "marketing"]),
])

# ============================================
# Social
# ============================================

MAX_MESSAGE_LENGTH = 4000
MAX_POST_LENGTH = 5000
MAX_COMMENT_LENGTH = 2000
DEFAULT_POSTS_PAGE_SIZE = 50

# Read flips kept for messages the aggregator has not seen yet
MAX_PENDING_READS = 1024
