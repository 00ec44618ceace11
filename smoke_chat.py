import asyncio
import json
import sys

import websockets


async def smoke(url: str = "ws://localhost:5000/ws"):
    async with websockets.connect(url) as ws:
        # First frame carries the backend-assigned session id
        connected = json.loads(await ws.recv())
        print(f"Connected: {connected}")

        await ws.send(json.dumps({"type": "user_join", "username": "smoke", "room": "general"}))
        # user_list, user_joined, message_history
        for _ in range(3):
            print(f"Received: {await ws.recv()}")

        await ws.send(json.dumps({"type": "send_message", "message": "Hello from Python!"}))
        msg = await ws.recv()
        print(f"Received: {msg}")


if __name__ == "__main__":
    asyncio.run(smoke(*sys.argv[1:]))
