"""Print the chat context and prompt that would be sent for a question."""
import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.generation.context_builder import build_chat_context
from src.generation.prompts import build_chat_prompt
from src.logging_config import configure_from_settings
from src.observability import set_trace_source


async def main(query: str, owner_id: str, max_tokens: int):
    set_trace_source("script")
    chat_context = await build_chat_context(query, owner_id, max_tokens=max_tokens)

    print(f"Query: {query}")
    print("-" * 60)
    if chat_context.is_empty:
        print("No relevant notes found; the generic prompt will be used.")
    else:
        print(chat_context.context)
        print("Citations:")
        for citation in chat_context.citations:
            suffix = f" > {citation.heading}" if citation.heading else ""
            print(f"  - {citation.title}{suffix}")
    print("-" * 60)

    for message in build_chat_prompt(query, chat_context):
        print(f"[{message.type}]")
        print(message.content)
        print()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("query")
    parser.add_argument("--owner", required=True, help="Owner id whose notes are searched")
    parser.add_argument("--max-tokens", type=int, default=3000)
    args = parser.parse_args()

    configure_from_settings()
    asyncio.run(main(args.query, args.owner, args.max_tokens))
