from langchain_core.prompts import ChatPromptTemplate
from src.schemas.context import ChatContext

# 1. System Prompt: The "Rules of the Game"
SYSTEM_TEMPLATE = """You are an assistant for a personal notes app. Your role is to help users find information from their own notes and answer questions based on the content they've written.

Guidelines:
1. Answer only using the provided context chunks from the user's notes.
2. If the answer is not in the context, say: "I couldn't find this information in your notes."
3. Be concise but thorough.
4. When referencing information, cite which note and heading it came from.
5. If multiple notes contain relevant information, synthesize it while keeping citations.
6. Format your response in clear, readable markdown.
7. End with a "Citations" section listing the note titles and headings used.

Remember: you can only access the user's own notes. Never make up information that isn't in the provided context.
"""

# 2. Context blocks: one with retrieved notes, one for when nothing matched
CONTEXT_TEMPLATE = """Context from your notes:
{context}

Please answer based on the context provided above."""

NO_CONTEXT_TEMPLATE = """No relevant context was found in your notes for this query: "{question}"

Please tell the user you couldn't find this information in their notes and suggest they add notes on this topic."""

# 3. User Prompt: The "Input"
USER_TEMPLATE = """User question: {question}"""


def get_notes_prompt(has_context: bool) -> ChatPromptTemplate:
    """Returns the chat prompt template, with or without a context block."""
    context_block = CONTEXT_TEMPLATE if has_context else NO_CONTEXT_TEMPLATE
    return ChatPromptTemplate.from_messages([
        ("system", SYSTEM_TEMPLATE + "\n" + context_block),
        ("human", USER_TEMPLATE),
    ])


def build_chat_prompt(query: str, chat_context: ChatContext):
    """Format chat messages for a question and its assembled context."""
    has_context = bool(chat_context.context.strip())
    prompt = get_notes_prompt(has_context)
    if has_context:
        return prompt.format_messages(context=chat_context.context, question=query)
    return prompt.format_messages(question=query)
