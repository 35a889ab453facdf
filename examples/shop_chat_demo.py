"""Minimal terminal chat against one shop.

Usage: python examples/shop_chat_demo.py <shop-id>
"""

import asyncio
import sys

from shop_assistant import open_chat_session


async def main(shop_id: str) -> None:
    session = await open_chat_session(shop_id)
    print("Assistant:", session.messages[-1].content)
    while True:
        try:
            question = await asyncio.to_thread(input, "You: ")
        except EOFError:
            break
        reply = await session.send_message(question)
        if reply is not None:
            print("Assistant:", reply.content)
    session.close()
    await session.flush_usage()


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "bean-there"))
