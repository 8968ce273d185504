"""
Gemini access for ConceptAI.

Every call builds its own client from the user's key, so one user's key is
never used for another user's request.
"""
import logging

from google import genai

import config

logger = logging.getLogger("conceptai.gemini")

# === EXPLANATION STYLES ===
# (value, label shown in the UI, prefix sent to the model)
_STYLES = [
    ('simple', "Simple (Like I'm 5)",
     "Explain this concept as if I'm 5 years old, using very simple language and examples:"),
    ('beginner', 'Beginner Friendly',
     "Explain this concept for a complete beginner, using clear and accessible language:"),
    ('intermediate', 'Intermediate',
     "Explain this concept for someone with intermediate knowledge, providing good detail:"),
    ('advanced', 'Advanced',
     "Explain this concept in depth for someone with advanced understanding:"),
    ('analogy', 'Using Analogies',
     "Explain this concept using analogies and metaphors to make it relatable:"),
    ('stepbystep', 'Step by Step',
     "Explain this concept step by step, breaking it down into clear stages:"),
]

EXPLANATION_STYLES = [{'value': value, 'label': label} for value, label, _ in _STYLES]
STYLE_PROMPTS = {value: prefix for value, _, prefix in _STYLES}
DEFAULT_STYLE = 'simple'

VERIFY_PROMPT = 'Say "verified" if you can read this.'


class GeminiError(Exception):
    """The provider rejected the key or failed to answer."""


def build_prompt(concept, style):
    """Prefix the concept with the style's instruction (unknown styles fall back to simple)."""
    prefix = STYLE_PROMPTS.get(style, STYLE_PROMPTS[DEFAULT_STYLE])
    return f"{prefix}\n\nConcept: {concept}"


def generate_text(api_key, prompt):
    """
    WHAT THIS FUNCTION DOES:
    Sends a single prompt to Gemini using the caller's own API key and returns
    the text of the answer ('' if the model returned nothing).

    Any failure on the provider side (bad key, quota, network) is re-raised as
    GeminiError so the endpoints can map it to an HTTP status.
    """
    try:
        client = genai.Client(api_key=api_key)
        response = client.models.generate_content(
            model=config.GEMINI_MODEL,
            contents=prompt,
        )
    except Exception as e:
        raise GeminiError(str(e)) from e
    return response.text or ''


def verify_api_key(api_key):
    """Probe the key with a tiny prompt. True when Gemini answers with any text."""
    text = generate_text(api_key, VERIFY_PROMPT)
    return bool(text.strip())


def explain(api_key, concept, style):
    prompt = build_prompt(concept, style)
    logger.debug("Explaining concept in style %s", style)
    return generate_text(api_key, prompt)
