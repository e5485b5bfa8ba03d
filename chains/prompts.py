from langchain_core.prompts import PromptTemplate

SYSTEM_BASE = """You are an expert research assistant helping academics understand scientific papers.
Your job is to answer the question below using ONLY the provided context from research papers.

Rules:
- Answer based ONLY on the provided context
- Always cite which source you used like this: [Source 1], [Source 2]
- If the context doesn't contain enough info, say so clearly
- Be precise and academic in tone
- Do NOT make up information"""

SOURCE_TEMPLATE = PromptTemplate(
    input_variables=["number", "title", "authors", "published", "text"],
    template=(
        "[Source {number}]\n"
        "Paper: {title}\n"
        "Authors: {authors}\n"
        "Published: {published}\n"
        "Content: {text}"
    ),
)

GROUNDED_ANSWER_TEMPLATE = PromptTemplate(
    input_variables=["context", "question"],
    template=(
        SYSTEM_BASE + "\n\n"
        "CONTEXT FROM RESEARCH PAPERS:\n{context}\n\n"
        "QUESTION: {question}\n\n"
        "ANSWER (with citations):"
    ),
)
