from inktranslate.config import DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE

RESULT_ID_FIELD = "id"
RESULT_MARKUP_FIELD = "translated_html"


def generate_system_instruction(source_language=DEFAULT_SOURCE_LANGUAGE, target_language=DEFAULT_TARGET_LANGUAGE,
                                custom_instructions=""):
    """
    Generate the system instruction sent with every chunk.

    The chunk itself (a sequence of <tag id="...">...</tag> snippets) is sent
    as the user content, unchanged.

    Returns:
    str: The complete instruction block
    """
    # PROMPT - can be edited for custom usages
    role_and_instructions_block = f"""
## ROLE
# You are a professional literary translator specializing in {source_language} to {target_language} translation.

## TRANSLATION
+ Translate the text content within the provided HTML snippets to {target_language}
+ PRESERVE the literary tone, nuance, and style of the original text
+ Translate in the author's style, without adding or removing content

## FORMATING
+ CRITICAL: Preserve all inner HTML tags (like <em>, <strong>, <br/>, <a>, <span>) EXACTLY as they are. Only translate the text around them
+ Each snippet carries an id attribute: keep every id exactly as given
+ Return a JSON array with one object per snippet: {{"{RESULT_ID_FIELD}": "<snippet id>", "{RESULT_MARKUP_FIELD}": "<translated inner HTML>"}}
+ "{RESULT_MARKUP_FIELD}" holds only the inner content of the snippet, without the enclosing tag
+ Return ONLY the JSON array
"""

    custom_instructions_block = ""
    if custom_instructions and custom_instructions.strip():
        custom_instructions_block = f"""
### ADDITIONAL INSTRUCTIONS
{custom_instructions.strip()}
"""

    return "\n".join(part.strip() for part in [role_and_instructions_block, custom_instructions_block] if part.strip())


def generate_response_schema(uppercase_types=False):
    """
    JSON schema of the expected answer.

    Gemini uses OpenAPI-style upper-case type names, Ollama plain JSON Schema.
    """
    def type_name(name):
        return name.upper() if uppercase_types else name

    return {
        "type": type_name("array"),
        "items": {
            "type": type_name("object"),
            "properties": {
                RESULT_ID_FIELD: {"type": type_name("string")},
                RESULT_MARKUP_FIELD: {"type": type_name("string")}
            },
            "required": [RESULT_ID_FIELD, RESULT_MARKUP_FIELD]
        }
    }
