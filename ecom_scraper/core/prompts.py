"""
Prompts for extractor generation and reflection
"""

from typing import Dict, List, Optional

from .config import MAX_SAMPLE_CHARS

PARSER_SYSTEM_PROMPT = """You are an expert e-commerce data extraction engineer.
Your task is to generate a standalone JavaScript function named 'extractProducts' that parses a given string of text (HTML or Markdown) and returns a list of product objects.

The 'Product' object structure MUST be:
{
  "name": string | null,
  "priceRaw": string | null,
  "priceNormalized": number | null,
  "currency": string | null,
  "images": string[] | [],
  "availability": string | null,
  "url": string | null,
  "attributes": Record<string, any> | {}
}

Requirements for the generated code:
1. The function 'extractProducts(text)' must be self-contained: no imports, no DOM, no network, no globals.
2. It should handle common e-commerce patterns (JSON-LD, Meta tags, or generic listing structures represented in text).
3. If a property is not found, it MUST be null (or [] for images, {} for attributes).
4. It must return a JavaScript array of these objects, one per product in the listing.
5. It must work on every page of the same listing, not only on this sample: match the repeating structure, never hardcode product names or prices.

Respond with ONLY a JSON object of this exact shape:
{
  "explanation": "one or two sentences on how the products are located",
  "code": "function extractProducts(text) { ... }"
}
The "code" value is a JSON string: escape newlines as \\n and quotes as \\"."""


def truncate_sample(sample_text: str, limit: int = MAX_SAMPLE_CHARS) -> str:
    if len(sample_text) <= limit:
        return sample_text
    return sample_text[:limit] + "\n\n[... sample truncated ...]"


def build_initial_messages(sample_text: str, url: Optional[str] = None) -> List[Dict[str, str]]:
    """System instruction plus the raw sample"""
    prompt = f"Analyze this e-commerce text and generate the 'extractProducts' function:\n\n{truncate_sample(sample_text)}"
    if url:
        prompt = f"SOURCE URL: {url}\n\n" + prompt

    return [
        {"role": "system", "content": PARSER_SYSTEM_PROMPT},
        {"role": "user", "content": prompt}
    ]


def build_reflection_messages(
    sample_text: str,
    previous_code: str,
    error: str,
    url: Optional[str] = None
) -> List[Dict[str, str]]:
    """
    Follow-up request embedding the failing code and why it failed.

    Only the latest attempt is included; older attempts add tokens without
    helping the model.
    """
    prompt = f"""The previous 'extractProducts' function did not work on the sample below.

# PREVIOUS CODE

```javascript
{previous_code}
```

# WHY IT FAILED

{error}

# WHAT TO DO

- Fix the problem described above. Do not return the same code again.
- The function receives the sample text exactly as shown below as its only argument.
- It must return a non-empty array, and at least one product must have a name or a price.

# SAMPLE

{truncate_sample(sample_text)}
"""
    if url:
        prompt = f"SOURCE URL: {url}\n\n" + prompt

    return [
        {"role": "system", "content": PARSER_SYSTEM_PROMPT},
        {"role": "user", "content": prompt}
    ]
