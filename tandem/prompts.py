from __future__ import annotations

from tandem.models import Passage

FOLLOWUP_PROMPT_TEMPLATE = """\
Based on the original question and the initial retrieved passages, generate up to {max_questions} specific follow-up questions that would help gather more complete information.

Original Question: "{question}"

Initial Retrieved Information:
{context}

Generate follow-up questions that are SPECIFIC and TARGETED to find missing information. Focus on:

1. SPECIFIC REFERENCES: references, numbers or identifiers mentioned in the passages that need more detail.
2. SPECIFIC PROCEDURES: detailed procedures related to the question topic.
3. CLIENT-SPECIFIC CONTEXT: the situation and history of any client that is mentioned.
4. RELATED POLICIES: policies that might be related but were not found yet.
5. CONSEQUENCES AND NEXT STEPS: what happens if the situation is not addressed.
6. IMPLEMENTATION DETAILS: how policies are applied in practice.
7. MISSING INFORMATION: gaps in the current information.
8. SPECIFIC EXAMPLES: concrete examples or cases related to the situation.

Examples of specific, direct questions:
- "What specific requirements or qualifications are mentioned in the documents?"
- "What are the exact procedures or steps outlined for this process?"
- "What specific consequences or outcomes are described in the documents?"

Format your response as a JSON array of strings and nothing else.

Follow-up Questions:
"""

FINAL_ANSWER_PROMPT_TEMPLATE = """\
You are an assistant that analyzes documents and transcripts and answers questions based only on the retrieved content.

Follow this structure when answering:

1. FIRST: identify the most relevant information in the passages that directly addresses the question.
2. SECOND: where applicable, give the specific context, examples or details found in the passages.
3. THIRD: explain how the information relates to the question and any implications or conclusions.
4. FOURTH: if information is missing or limited, state clearly which additional details would help.

Guidelines:
- Base the answer strictly on the provided passages.
- Cite specific details, sections, policy identifiers or sources from the passages.
- Be objective and factual.
- If the passages do not contain enough information to fully answer, say so.

Question: "{question}"

Context Information from retrieved passages:
{context}

Provide a complete answer that directly addresses the question using the information above. Be specific about the sources and details found in the passages.
"""

FOLLOWUP_SEPARATOR = "\n\n"
FINAL_SEPARATOR = "\n\n---\n\n"


def render_context(passages: list[Passage], separator: str) -> str:
    if not passages:
        return "(no passages retrieved)"
    return separator.join(
        f"[{passage.source_collection.value}:{passage.document_id}#{passage.chunk_index}]\n"
        f"{passage.text}"
        for passage in passages
    )


def build_followup_prompt(
    question: str,
    passages: list[Passage],
    max_questions: int,
) -> str:
    return FOLLOWUP_PROMPT_TEMPLATE.format(
        max_questions=max_questions,
        question=question,
        context=render_context(passages, FOLLOWUP_SEPARATOR),
    )


def build_final_prompt(question: str, passages: list[Passage]) -> str:
    return FINAL_ANSWER_PROMPT_TEMPLATE.format(
        question=question,
        context=render_context(passages, FINAL_SEPARATOR),
    )
