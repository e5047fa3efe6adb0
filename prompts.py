MAX_PROMPT_CHARS = 910

PROMPT_FIELDS = (
    "concept",
    "composition",
    "color",
    "background",
    "mood",
    "style",
    "settings",
)

FIELD_DESCRIPTIONS = {
    "concept": (
        'Describe the main element and two supporting elements from the title. '
        'Do NOT use the words "seamless", "pattern", or "illustration".'
    ),
    "composition": (
        'Use this exact string: "Only a few elements are present, Elements randomly '
        "ultra airy scattered, not symmetrical, no overlaps or touching. Each stands "
        "individually with airy spacing, forming a full, distinct diamond-shaped "
        "composition without visible outlines. All elements must fit completely inside "
        'the diamond area, no parts cropped or touching edges.."'
    ),
    "color": (
        "List descriptive, non-gradient, muted/pastel color keywords that fit the theme. "
        'Example format: "soft, warm, muted, pastel, natural, non-gradient, festive winter '
        'tones (muted red, forest green, cream, light grey, beige)".'
    ),
    "background": (
        "Describe a single, vivid, harmonious background color. "
        'Example format: "bright, harmonious, single vivid tone (light icy blue)."'
    ),
    "mood": "Provide a list of moods that match the theme, style, and colors.",
    "style": (
        "Name one specific art style (e.g., Scandinavian, Kawaii, Gouache painting) "
        "followed by 4 of its key characteristics. "
        'Example format: "Gouache painting, opaque pigments, matte finish, bold outlines".'
    ),
    "settings": 'Use this exact string: "--ar 1:1 --v 6 --style raw --q 2 --repeat 2"',
}

TITLE_PROMPT = """\
You are an expert microstock keyword and title generator. Your task is to create a compelling and keyword-rich title for a seamless pattern based on the main element: "{theme}".

The title must follow this exact structure:
1. [Main Element] Pattern Vector.
2. Seamless [Main Element] Pattern with [Supporting Element 1] and [Supporting Element 2].
3. [Concept/Theme].
4. seamless pattern Background.

Rules:
- The title must contain the words "seamless" and "pattern".
- [Supporting Element 1] and [Supporting Element 2] must be thematically related to the main element but distinct.
- [Concept/Theme] should be a short, descriptive phrase (e.g., "Winter landscape", "Festive holiday design", "Abstract geometric shapes").
- Use common, easily recognizable keywords for microstock platforms.
- The entire output should be a single line of text.

Example for "Christmas Tree":
Christmas Tree Pattern Vector. Seamless Christmas Tree Pattern with reindeer and mountain. Winter landscape. seamless pattern Background.

Now, generate a title for: "{theme}"
"""

JSON_PROMPT = """\
You are an AI prompt engineer for image generation. Based on the provided microstock title, generate a JSON object describing an image generation prompt.
The entire string of the generated JSON object must be under {limit} characters.

Microstock Title: "{title}"
"""

MODIFY_COLOR_PROMPT = """\
You are an AI prompt engineer. You will be given a JSON object for an image generation prompt.
Your task is to ONLY modify the "color" and "background" values to a new, different color palette that still fits the existing "concept" and "style".
Do not change any other keys.
The entire string of the generated JSON object must be under {limit} characters.

Current JSON:
{current}

Generate the new, complete JSON object with only the "color" and "background" changed.
"""

MODIFY_STYLE_PROMPT = """\
You are an AI prompt engineer. You will be given a JSON object for an image generation prompt.
Your task is to change the "style" to a completely new and different art style.
You MUST also update the "color", "background", and "mood" values to be consistent with the new style.
Do not change the "concept", "composition", or "settings" keys.
The entire string of the generated JSON object must be under {limit} characters.

Current JSON:
{current}

Generate the new, complete JSON object with "style", "color", "background", and "mood" changed.
"""

# Appended when the model is not given a response schema.
FENCED_JSON_SUFFIX = """
The JSON object must have exactly these string keys, each following its rule:
{fields}

Return the JSON object wrapped in a fenced code block that starts with ```json and ends with ```.
"""


def fenced_field_rules():
    return "\n".join(f'- "{name}": {FIELD_DESCRIPTIONS[name]}' for name in PROMPT_FIELDS)
