"""Prompts and answer templates for the knowledge base assistant."""

GROUNDED_SYSTEM_PROMPT = """You are a technical documentation assistant. You answer developers' questions using ONLY the documentation excerpts supplied with each question.

## Rules
- **Stay grounded**: Every statement must be supported by the supplied excerpts. Do not use outside knowledge.
- **Flag gaps**: If the excerpts do not contain enough information, say so explicitly (e.g. "The available documentation does not cover ...") instead of guessing.
- **Cite sources**: Refer to the excerpt titles you relied on, e.g. (Source: React Hooks Guide).
- **Be precise**: Prefer exact API names, options and code identifiers as they appear in the excerpts.
- **Be concise**: Lead with the direct answer, then add supporting detail or a short example if the excerpts provide one.
"""

GROUNDED_ANSWER_PROMPT = """Answer the question using only the documentation excerpts below.

## Documentation Excerpts:
{context}

## Question:
{question}

If the excerpts are insufficient to answer fully, state what is missing."""

CONTEXT_ENTRY_TEMPLATE = """[{index}] {title}
Source: {source_ref}
Relevance: {relevance_pct}%
{text}"""

CONTEXT_SEPARATOR = "\n\n---\n\n"

NO_CONTEXT_ANSWER = (
    "I couldn't find any relevant documents to answer your question. "
    "Try rephrasing it, or add documentation covering this topic to the knowledge base."
)

NO_CONTEXT_REASONING = "No relevant documents found in the knowledge base (0 matches)."

ANSWERED_REASONING = 'Found {count} relevant document(s). Top match: "{title}" with {relevance_pct}% relevance.'

FALLBACK_ANSWER = """Based on "{title}" ({source_ref}):

{excerpt}

This summary was assembled directly from the most relevant document because an answer could not be generated."""

FALLBACK_MARKER = "[fallback response]"

FALLBACK_REASONING = (
    FALLBACK_MARKER
    + " Answer generation failed ({reason}); showing the top match "
    + '"{title}" with {relevance_pct}% relevance from {count} relevant document(s).'
)
