"""Static page templates and keyword tables used to shape every preview.

All lookups are first-match and default-safe: a prompt that matches no
keyword still gets the documented default, never an error.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, NamedTuple, Tuple


BUSINESS = "business"
ECOMMERCE = "ecommerce"

ECOMMERCE_KEYWORDS: List[str] = ["ecommerce", "store", "shop", "selling"]

# Insertion order is the match order.
COLOR_MAP: Dict[str, str] = {
    "blue": "blue-600",
    "red": "red-600",
    "green": "green-600",
    "purple": "purple-600",
    "pink": "pink-500",
    "yellow": "yellow-500",
    "orange": "orange-500",
    "cyan": "cyan-500",
    "teal": "teal-600",
    "indigo": "indigo-600",
    "violet": "violet-600",
    "rose": "rose-500",
    "amber": "amber-500",
    "emerald": "emerald-600",
    "sky": "sky-500",
    "fuchsia": "fuchsia-500",
}

STYLE_KEYWORDS: List[str] = [
    "modern",
    "minimal",
    "clean",
    "bold",
    "elegant",
    "fun",
    "professional",
    "creative",
    "playful",
    "vibrant",
]
DEFAULT_STYLE = "modern"

# Accent colors the offline fallback knows how to theme.
FALLBACK_ACCENTS: List[str] = ["blue", "red", "green", "purple", "amber", "teal", "rose", "indigo"]
DEFAULT_ACCENT = "purple"

ALLOWED_IMAGE_HOSTS: Tuple[str, ...] = ("picsum.photos", "placehold.co")


class ColorScheme(NamedTuple):
    primary: str
    secondary: str

    @property
    def label(self) -> str:
        return f"{self.primary}, {self.secondary}"


DEFAULT_COLOR_SCHEME = ColorScheme("purple-600", "indigo-600")


SHARED_COMPONENTS: Dict[str, str] = {
    "header": (
        "Header/Navbar (sticky top-0 z-50 bg-white shadow): Logo button (navigates to home on click), "
        "nav buttons for each page, optional CTA button. Hamburger menu on mobile with useState toggle. "
        "All nav uses onClick with setCurrentPage, NEVER href."
    ),
    "footer": (
        "Footer (bg-gray-900 text-white py-12): Business name, copyright year, quick nav links "
        "(onClick, not href), social media icon links, brief contact info."
    ),
}

UI_RULES: List[str] = [
    "Each page MUST have ALL the numbered sections listed above - do NOT skip any",
    "Alternate section backgrounds: white, gray-50, gradient, colored - no two adjacent sections should look the same",
    "Use varied layouts per section: card grids, two-column text+image, full-width banners, centered content blocks",
    "Visual polish: shadow-lg, rounded-xl, hover transitions (transition-all duration-300 hover:shadow-xl hover:-translate-y-1)",
    "Generous vertical spacing between sections (py-16 or py-20)",
    "Responsive: sm:, md:, lg: breakpoints on all grids and text sizes",
    'Real specific content everywhere - NO "Lorem ipsum", NO placeholder text, NO "..." truncation',
]

CODE_RULES: List[str] = [
    "Define data arrays at the top of each page component and use .map() to render cards/items",
    "Example: const features = [{icon:'...', title:'...', desc:'...'}, ...]; then features.map((f,i) => <div key={i}>...</div>)",
    "Same for services, products, testimonials, team members, FAQ items, stats, etc.",
    "Reuse a single card layout via .map() instead of writing each card separately",
]


# Each page: (state value, [(section id, instruction), ...]). Instructions may
# reference {businessName} and {colorScheme}.
BUSINESS_PAGES: Dict[str, Tuple[str, List[Tuple[str, str]]]] = {
    "home": ("home", [
        ("hero", 'Full-width gradient banner with business name "{businessName}", a tagline and a primary CTA button ("Get Started" or "Learn More"). Min height py-24.'),
        ("features", 'Section title "Why Choose Us". 3-6 benefit cards in a responsive grid (md:grid-cols-3), each with an emoji icon, bold title and short description. Hover lift effect.'),
        ("stats", '3-4 large stat counters in a centered row (e.g. "500+ Projects", "98% Satisfaction"). bg-gray-50 or a subtle colored background.'),
        ("testimonials", 'Section title "What Our Clients Say". 3 testimonial cards with avatar (picsum.photos/50/50), name, role, unicode star rating and quote.'),
        ("cta", "Full-width gradient section using {colorScheme} with a compelling headline, subtitle and action button. py-16 minimum."),
    ]),
    "about": ("about", [
        ("pageHeader", 'Gradient banner with title "About {businessName}" and a subtitle about the company.'),
        ("companyStory", "Two-column layout (md:grid-cols-2): real paragraphs about history, mission and values on the left, an image (picsum.photos) on the right."),
        ("team", "3-4 team member cards with rounded-full avatar (picsum.photos/200/200), name and role. Hover shadow."),
        ("statsMilestones", "Stats variant or a timeline of company milestones. bg-gray-50."),
        ("gallery", "4-6 images in a grid (picsum.photos) showing work or projects, with a hover overlay or zoom."),
    ]),
    "services": ("services", [
        ("pageHeader", 'Gradient or colored banner with "Our Services" title and subtitle.'),
        ("servicesGrid", '4-6 service cards with emoji icon, title, description and "Learn More" button (md:grid-cols-2 lg:grid-cols-3). Hover shadow and scale.'),
        ("process", '"How We Work" section with 3-4 numbered steps, flex row on desktop and stacked on mobile.'),
        ("faq", "4-6 accordion questions toggled with useState. Alternating backgrounds."),
    ]),
    "contact": ("contact", [
        ("pageHeader", 'Gradient banner with "Contact Us" title and subtitle.'),
        ("contactInfoCards", "3 cards side by side (Email, Phone, Location) with emoji icons and details. bg-gray-50 section."),
        ("contactForm", "Styled form with Name, Email, Subject inputs and Message textarea. Submit button with hover effect and focus rings."),
        ("newsletter", 'Small "Stay Updated" signup strip with email input and subscribe button on a colored background.'),
    ]),
}

ECOMMERCE_PAGES: Dict[str, Tuple[str, List[Tuple[str, str]]]] = {
    "home": ("home", [
        ("hero", 'Full-width gradient banner with store name "{businessName}", a tagline and a "Shop Now" CTA button. Min height py-24.'),
        ("promoBar", "Thin announcement strip below the hero (free shipping, discount code or seasonal sale) in a contrasting color."),
        ("featuredProducts", 'Section title "Trending Now". 3-4 product cards with badge, image (picsum.photos), name, price and "Add to Cart" button.'),
        ("categories", "4-6 category cards with a background image (picsum.photos), dark overlay and the category name in white. Hover zoom."),
        ("testimonials", "3 customer review cards with avatar (picsum.photos/50/50), name, unicode star rating and quote on bg-gray-50."),
        ("newsletter", "Full-width email signup with persuasive text on a {colorScheme} gradient."),
    ]),
    "about": ("about", [
        ("pageHeader", 'Gradient banner with title "About {businessName}" and a subtitle.'),
        ("companyStory", "Two-column layout (md:grid-cols-2): history, mission and values on the left, an image (picsum.photos) on the right."),
        ("stats", '3-4 large stat counters (e.g. "1000+ Products", "50k+ Happy Customers"). bg-gray-50 section.'),
        ("team", "3-4 team member cards with rounded-full avatar (picsum.photos/200/200), name and role."),
        ("cta", 'Full-width gradient section with a "Start Shopping Today" headline and button.'),
    ]),
    "products": ("products", [
        ("pageHeader", 'Gradient or colored banner with "Our Products" title.'),
        ("filterBar", "Row of pill-style category filter buttons above the grid."),
        ("productGrid", '6-12 product cards (grid-cols-1 sm:grid-cols-2 lg:grid-cols-3 xl:grid-cols-4), each with image (picsum.photos), name, short description, price and "Add to Cart" button.'),
        ("cta", '"Can\'t find what you need? Contact us" section with a button to the contact page.'),
    ]),
    "contact": ("contact", [
        ("pageHeader", 'Gradient banner with "Get In Touch" title and subtitle.'),
        ("contactInfoCards", "3 cards side by side (Email, Phone, Address) with emoji icons and details. bg-gray-50."),
        ("contactForm", "Form with Name, Email, Subject, Message textarea and a styled Submit button with focus rings."),
        ("faq", "4-6 accordion questions toggled with useState."),
    ]),
}

TEMPLATES: Dict[str, Dict[str, Any]] = {
    BUSINESS: {
        "type": BUSINESS,
        "pages": BUSINESS_PAGES,
        "nav_pages": ["home", "about", "services", "contact"],
    },
    ECOMMERCE: {
        "type": ECOMMERCE,
        "pages": ECOMMERCE_PAGES,
        "nav_pages": ["home", "about", "products", "contact"],
    },
}


def classify(niche: str) -> str:
    lower = (niche or "").lower()
    for kw in ECOMMERCE_KEYWORDS:
        if kw in lower:
            return ECOMMERCE
    return BUSINESS


def get_template(template_type: str) -> Dict[str, Any]:
    return TEMPLATES.get(template_type) or TEMPLATES[BUSINESS]


def color_scheme_for(prompt: str) -> ColorScheme:
    lower = (prompt or "").lower()
    for color, primary in COLOR_MAP.items():
        if color in lower:
            secondary = primary.replace("-600", "-500").replace("-500", "-400")
            return ColorScheme(primary, secondary)
    return DEFAULT_COLOR_SCHEME


def style_for(prompt: str) -> str:
    lower = (prompt or "").lower()
    for keyword in STYLE_KEYWORDS:
        if keyword in lower:
            return keyword
    return DEFAULT_STYLE


_LEAD_IN_RES = [
    re.compile(r"\bi (?:need|want) (?:an?|the) ", re.IGNORECASE),
    re.compile(r"^\s*(?:build|create|make|design) (?:me )?(?:an?|the) ", re.IGNORECASE),
    re.compile(r"\bfor (?:selling|creating|building|making) ", re.IGNORECASE),
]
_CATEGORY_NOUN_RE = re.compile(
    r"\b(?:website|web app|application|site|landing page|e-commerce|ecommerce|store|portfolio|blog)\b",
    re.IGNORECASE,
)
_WS_RE = re.compile(r"\s+")


def derive_display_name(
    prompt: str,
    *,
    max_words: int = 5,
    max_chars: int = 50,
    default: str = "Your Business",
) -> str:
    """Turn a free-text brief into a short name for hero titles.

    "I need an ecommerce store for selling handmade jewelry" -> "handmade jewelry".
    """
    stripped = prompt or ""
    for rx in _LEAD_IN_RES:
        stripped = rx.sub("", stripped)
    stripped = _CATEGORY_NOUN_RE.sub("", stripped)
    stripped = _WS_RE.sub(" ", stripped).strip(" \t\n.,;:!?")
    words = [w for w in stripped.split(" ") if len(w) > 1][:max_words]
    name = " ".join(words).strip(" .,;:!?")
    if len(name) < 3:
        return default
    if len(name) > max_chars:
        name = name[: max_chars - 3].rstrip() + "..."
    return name
