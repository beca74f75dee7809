"""LLM prompt templates for page analysis."""

from pagewise.services.page_analysis.models import OutputLanguage

SYSTEM_PROMPT = """You are an expert TNPSC (Tamil Nadu Public Service Commission) exam tutor.
You analyze study material page by page and extract what a candidate must remember.
Always respond with valid JSON only. Do not include any explanatory text outside the JSON object."""

PAGE_ANALYSIS_PROMPT = """Analyze this content from page {page_number} of a PDF for TNPSC exam preparation. {language_instruction}
Content: \"\"\"{page_text}\"\"\"

Return a single, valid JSON object with this exact structure:
{{
  "keyPoints": ["At least 8 short, crisp, memorizable points"],
  "studyPoints": [{{"title": "string", "description": "string", "importance": "high|medium|low", "tnpscRelevance": "string"}}],
  "summary": "Brief summary of the page content",
  "tnpscRelevance": "How this page's content relates to TNPSC exams",
  "tnpscCategories": ["Category1", "Category2"]
}}
Focus on names, dates, places, events, definitions, and key data."""


def build_language_instruction(language: OutputLanguage | str) -> str:
    """Sentence telling the model which language to answer in."""
    if OutputLanguage(language) is OutputLanguage.TAMIL:
        return "Provide all responses in Tamil."
    return "Provide all responses in English."


def build_page_analysis_prompt(
    page_text: str,
    page_number: int,
    language: OutputLanguage | str = OutputLanguage.ENGLISH,
    max_length: int = 15000,
) -> str:
    """
    Build the per-page analysis prompt.

    Args:
        page_text: Raw text of the page.
        page_number: 1-based page number.
        language: Output language for the analysis.
        max_length: Page text is truncated to this many characters.

    Returns:
        Formatted prompt string.
    """
    return PAGE_ANALYSIS_PROMPT.format(
        page_number=page_number,
        language_instruction=build_language_instruction(language),
        page_text=page_text[:max_length],
    )


QUESTION_GENERATION_PROMPT = """Based on the following TNPSC study content, generate 15-20 questions.
Difficulty: {difficulty}.
Language: {language_instruction}
Content:
{content}

Generate ONLY these types:
- 70% Multiple Choice Questions (MCQ) with 4 options.
- 30% Assertion-Reason questions with 4 standard options.

Return a single, valid JSON array of objects with this exact structure:
[
  {{
    "question": "string",
    "options": ["string", "string", "string", "string"],
    "answer": "A|B|C|D",
    "type": "mcq" | "assertion_reason",
    "difficulty": "{difficulty}",
    "explanation": "string"
  }}
]
CRITICAL: The 'answer' field must be ONLY the capital letter (A, B, C, or D) of the correct option. For Assertion-Reason, use the standard A, B, C, D options."""


def build_question_language_instruction(language: OutputLanguage | str) -> str:
    if OutputLanguage(language) is OutputLanguage.TAMIL:
        return "Generate all questions, options, and explanations in Tamil language."
    return "Generate all questions, options, and explanations in English language."


def build_question_generation_prompt(
    content: str,
    difficulty: str = "medium",
    language: OutputLanguage | str = OutputLanguage.ENGLISH,
) -> str:
    """Build the quiz prompt over merged page content."""
    return QUESTION_GENERATION_PROMPT.format(
        difficulty=difficulty,
        language_instruction=build_question_language_instruction(language),
        content=content,
    )
