"""Static catalogue data: styles, product types, prompts, schemas, Printify map."""

from __future__ import annotations

from typing import Dict, List

# ---------------------------------------------------------------------------
# User-facing choices
# ---------------------------------------------------------------------------

DESIGN_STYLES: List[str] = [
    "Minimalist Vector",
    "Geometric Modern",
    "Retro Script",
    "Vintage Engraving",
    "Watercolor Botanical",
    "Cosmic Doodle",
    "Art Deco",
    "Cyberpunk Glitch",
]

PRODUCT_TYPES: List[str] = [
    "Sweatshirt",
    "Mug",
    "Ornament",
    "T-Shirt",
    "Tote Bag",
    "Pillow",
    "Hoodie",
]

DEFAULT_THEME = "Christmas"
DEFAULT_STYLE = "Minimalist Vector"
DEFAULT_PRODUCT_TYPE = "Sweatshirt"
FALLBACK_STYLE = "Minimalist Vector"

# ---------------------------------------------------------------------------
# Art direction per style
# ---------------------------------------------------------------------------

STYLE_PROMPTS: Dict[str, str] = {
    "Minimalist Vector": (
        "Create a sophisticated, single-color vector graphic. The design must be clean, modern, "
        "and immediately legible from a distance. Emphasize elegant, crisp line work, impactful "
        "silhouettes, and masterful use of negative space. Typography is key: use a high-end, "
        "minimalist sans-serif font (like Helvetica Neue, Futura, or a similar aesthetic) that is "
        "perfectly integrated as a core design element. The final asset should feel like it "
        "belongs in a modern art gallery. Strictly monochrome on a transparent background."
    ),
    "Geometric Modern": (
        "Construct a bold, abstract design using fundamental shapes (circles, triangles, squares). "
        "Create a dynamic, visually striking composition with a limited, high-contrast color "
        "palette (max 3-4 colors). The aesthetic is sharp, intentional, and influenced by Bauhaus "
        "and Swiss design. Typography must be a clean, geometric sans-serif (e.g., Avant-Garde, "
        "Century Gothic), treated as a structural element within the composition."
    ),
    "Retro Script": (
        "Channel a 1970s retro vibe with a modern twist. The centerpiece is a bold, flowing script "
        "font with exaggerated swashes and a thick, confident weight. Think funky, groovy, and "
        "highly stylized. Use a classic 70s color palette: burnt orange, avocado green, mustard "
        "yellow, and cream. The design can have a slightly distressed, screen-printed texture to "
        "feel authentic. Incorporate subtle supporting elements like sparkles, stars, or soft "
        "stripes that enhance the typography without cluttering it. The mood is playful, "
        "nostalgic, and confident."
    ),
    "Vintage Engraving": (
        "Emulate a classic, hand-carved woodcut or steel engraving style. The design must be "
        "monochrome (black on a transparent background). Use intricate, high-detail linework, "
        "cross-hatching, and stippling to create a sense of texture, depth, and craftsmanship. "
        "The final asset should look like a lost illustration from a 19th-century book or a "
        "classic artisanal logo. Typography must be a timeless serif font with character, like "
        "Garamond or a Caslon-style face."
    ),
    "Watercolor Botanical": (
        "Create a soft, organic design featuring delicate, hand-painted watercolor illustrations "
        "of flowers, leaves, or other natural elements. Colors should be translucent, with soft "
        "edges and beautiful blending, as if painted on cotton paper. The composition should feel "
        "airy and natural. Typography must be an elegant, light script or a refined serif font "
        "that complements the artistic, hand-painted aesthetic."
    ),
    "Cosmic Doodle": (
        "A whimsical, imaginative hand-drawn style that looks like it came from a professional "
        "artist's sketchbook. Think intricate, charming doodles of stars, planets, moons, and "
        "constellations with a playful, friendly feel. Use a consistent, clean line weight. The "
        "typography should be a unique, quirky, handwritten font that is perfectly integrated "
        "into the celestial doodles. The style is creative, dreamy, and full of wonder."
    ),
    "Art Deco": (
        "An elegant, glamorous, and symmetrical design inspired by the roaring 1920s. Use strong, "
        "sharp geometric lines, sunburst patterns, and a sense of luxury and order. The color "
        "palette should be bold and high-contrast, incorporating metallic gold or silver accents. "
        "The typography is CRITICAL: it must be a distinctive Art Deco-style font, tall, "
        "geometric, highly stylized, and perfectly centered to create a commanding presence "
        "(e.g., Poiret One, Mostra Nuova)."
    ),
    "Cyberpunk Glitch": (
        "A futuristic, high-tech design with a deliberate glitch art aesthetic. Use a vibrant neon "
        "color palette (electric pinks, blues, purples) against a dark core. Incorporate digital "
        "distortion effects like scan lines, pixelation, chromatic aberration, and displaced "
        "elements. The typography should be a blocky, digital, or futuristic font that has a "
        "complementary glitch effect applied to it. The vibe is edgy, modern, and energetic."
    ),
}


def style_prompt(style: str) -> str:
    return STYLE_PROMPTS.get(style) or STYLE_PROMPTS[FALLBACK_STYLE]


# ---------------------------------------------------------------------------
# Ideation / copywriting instructions
# ---------------------------------------------------------------------------

HOLIDAY_GOLD_BLUEPRINT = """
**Core Trends:**
1.  **Coziness & Comfort:** Warm, soft, comfortable is paramount.
2.  **Personalization:** The #1 driver. Customize with names, dates, photos.
3.  **Niche-Specific:** Reflect the recipient's identity (e.g., "Dog Mom," "Book Lover").
4.  **Retro & Nostalgia:** 70s, 80s, and 90s designs are popular.
5.  **Humor & Sarcasm:** Relatable, funny takes on holiday stress and cheer sell well.

**Top 10 High-Performing Products:**
1.  **Sweatshirts (Crewneck) & Hoodies:** King of cozy. Target 18-35. Earthy/muted colors (Sage, Sand) and classic holiday colors. Designs: Minimalist text, retro fonts, niche phrases.
2.  **Ceramic Mugs (11oz & 15oz):** Perfect affordable gift. Broad appeal (25-55). Designs: Sarcastic humor, personalization (names, photos), wraparound patterns.
3.  **Ornaments (Ceramic, Metal, Wood):** Collectible & sentimental. Personalization is key. Designs: Major life events ("Our First Home"), photo-based, pet themes.
4.  **T-Shirts:** Evergreen. Good for layering/warmer climates. Designs: Funny graphics, matching family sets, pop culture parodies.
5.  **Blankets (Sherpa Fleece):** Ultimate cozy, high-value gift. Designs: Photo collages, personalized text, large-scale art.
6.  **Tote Bags:** Eco-friendly & practical. Good for niche designs. Natural/beige colors. Designs: Bookish themes, simple chic illustrations, humor.
7.  **Pillows & Pillow Covers:** Festive home decor. Farmhouse style, personalized family names, classic phrases.
8.  **Wrapping Paper:** Unique and special. Trend: Photo face mash (hilarious).
9.  **Socks:** Classic stocking stuffer. Designs: Face mash, hobby-themed, funny text on the bottom.
10. **Phone Cases:** Seasonal accessory. Designs: Aesthetic winter scenes, subtle patterns, personalization.
"""

ALCHEMIST_SYSTEM_INSTRUCTION = (
    "You are the 'Creative Alchemist,' an expert AI blending artistic mastery, market strategy, "
    "and copywriting genius. Your entire knowledge base comes from a top-secret print-on-demand "
    "strategy guide called the 'Holiday Gold Blueprint.' You are forbidden from using any outside "
    "knowledge. Your sole purpose is to synthesize the blueprint's principles into unique, "
    "commercially-proven product concepts that will be bestsellers on Etsy. You do not generate "
    "generic ideas. Your responses must always be in JSON format. The current year is 2025. "
    "Ensure any generated content with dates reflects this.\n\n"
    "Here is the 'Holiday Gold Blueprint' you must adhere to:\n"
    f"{HOLIDAY_GOLD_BLUEPRINT}"
)

CONCEPT_SCHEMA: Dict = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "conceptTitle": {"type": "string"},
            "displayText": {
                "type": "string",
                "description": "The concise text/quote to be rendered on the design.",
            },
            "fusion": {"type": "array", "items": {"type": "string"}},
            "vision": {"type": "string"},
            "whyItWorks": {"type": "string"},
        },
        "required": ["conceptTitle", "displayText", "fusion", "vision", "whyItWorks"],
    },
}

LISTING_SCHEMA: Dict = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "A keyword-rich Etsy title, 140 characters or less.",
        },
        "description": {
            "type": "string",
            "description": "An SEO-optimized product description for an Etsy listing.",
        },
        "variations": {
            "type": "array",
            "items": {"type": "string"},
            "description": "A list of 2-3 product variation suggestions.",
        },
        "tags": {
            "type": "array",
            "items": {"type": "string"},
            "description": "An array of exactly 13 Etsy tags, each 20 characters or less.",
        },
    },
    "required": ["title", "description", "variations", "tags"],
}

# ---------------------------------------------------------------------------
# Mockup scenes
# ---------------------------------------------------------------------------

MODEL_QUALITY_RULE = (
    "Model Quality Rule: The image must be photorealistic. If a person is visible, they must be "
    "in-focus with a natural, realistic pose and a clearly visible face. ABSOLUTELY NO headless "
    "or faceless/blurred-face models."
)

# Formatted with product_type, theme and fusion (comma-joined keywords).
MOCKUP_SCENES: List[str] = [
    "A professional studio hero mockup of a White (or very light neutral) {product_type} featuring "
    "the design. Minimalist, neutral background. Perfect for an Etsy thumbnail.",
    "An aesthetic lifestyle mockup of a Sand or Beige {product_type} with the design. Warm, cozy "
    "lighting.",
    "A high-contrast studio mockup of a Black {product_type} with the design. Light background to "
    "make the product pop.",
    "A professional mockup of a Navy Blue {product_type} showing the design. Clean setting.",
    "A cozy, authentic lifestyle shot of a Dark Heather Grey {product_type} with the design. Candid "
    "and artistic composition.",
    "A studio shot of a Forest Green {product_type} featuring the design. Neutral background.",
    "A studio shot of a Maroon {product_type} featuring the design. Neutral background.",
    "A studio shot of a Light Pink {product_type} featuring the design. Soft lighting.",
    "A close-up detail shot of the {product_type} highlighting the texture and print quality of the "
    "design.",
    "A creative flatlay of the {product_type} (in a neutral color) with the design, arranged with "
    "simple props related to {theme} or {fusion}.",
    "A lifestyle photo showing the {product_type} with the design in a clear {theme} setting (e.g. "
    "near decorations, trees, or seasonal elements).",
    "A mockup of the {product_type} with the design, shown from an angle or folded to display the "
    "form.",
]

MOCKUP_COUNT = len(MOCKUP_SCENES)


def mockup_prompts(product_type: str, theme: str, fusion: List[str]) -> List[str]:
    """Return the ordered scene prompts, each ending with the model quality rule."""
    fusion_text = ", ".join(fusion)
    return [
        scene.format(product_type=product_type, theme=theme, fusion=fusion_text) + " " + MODEL_QUALITY_RULE
        for scene in MOCKUP_SCENES
    ]


# ---------------------------------------------------------------------------
# Printify catalogue mapping
# ---------------------------------------------------------------------------

PRINTIFY_PRODUCT_MAP: Dict[str, Dict] = {
    "T-Shirt": {
        "blueprint_id": 12,       # Bella+Canvas 3001
        "print_provider_id": 29,  # Monster Digital
        "variants": [45174, 45175, 45176],
        "placement": "front",
    },
    "Hoodie": {
        "blueprint_id": 77,       # Gildan 18500
        "print_provider_id": 29,
        "variants": [45426, 45427, 45428],
        "placement": "front",
    },
    "Sweatshirt": {
        "blueprint_id": 53,       # Gildan 18000
        "print_provider_id": 29,
        "variants": [45300, 45301, 45302],
        "placement": "front",
    },
    "Mug": {
        "blueprint_id": 68,       # 11oz ceramic
        "print_provider_id": 23,  # District Photo
        "variants": [46317],
        "placement": "front",
    },
    "Tote Bag": {
        "blueprint_id": 485,
        "print_provider_id": 3,   # Spoke
        "variants": [58503],
        "placement": "front",
    },
    "Pillow": {
        "blueprint_id": 58,
        "print_provider_id": 3,
        "variants": [45364],
        "placement": "front",
    },
    "Ornament": {
        "blueprint_id": 847,
        "print_provider_id": 66,
        "variants": [96973],
        "placement": "front",
    },
}

DEFAULT_PRICE_CENTS = 2500
PRINT_IMAGE_SCALE = 0.8
