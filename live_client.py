"""Live client: send a question to /ws/reason and print each step as it streams in."""

import asyncio
import json
import sys

import websockets


HOST = "localhost:8000"
REASON_URI = f"ws://{HOST}/ws/reason"

DEFAULT_QUESTION = "Should a small town replace its public library with a digital-only service?"


def print_step(step: dict) -> None:
    print("=" * 70)
    print(f"[STEP {step['stepIndex']}/{step['maxSteps']}] {step['title']}")
    print("=" * 70)
    print(step["content"])

    breakdown = step["dharmaBreakdown"]
    print(
        f"\n  Dharma score: {step['dharmaScore']}  "
        f"[M:{breakdown['mindfulness']} E:{breakdown['emptiness']} "
        f"N:{breakdown['nonDuality']} B:{breakdown['boundlessCare']}]"
    )
    print(f"  Rationale:  {step['dharma']['rationale']}")
    if step.get("degraded"):
        print("  (degraded: response could not be parsed)")
    print(f"  Feedback:   {step.get('serverFeedback')}")
    print(f"  Next:       {step['nextStep']} ({step['terminationReason']})")
    print()


async def main(question: str) -> None:
    async with websockets.connect(REASON_URI) as ws:
        print(f"[CLIENT] Connected to {REASON_URI}\n")
        await ws.send(json.dumps({"messages": [{"role": "user", "content": question}]}))

        while True:
            data = json.loads(await ws.recv())

            if data.get("status") == "error":
                print(f"[CLIENT] Rejected: {data['detail']}")
                return

            kind = data.get("type")
            if kind == "reasoning-step":
                print_step(data["content"])
            elif kind == "text":
                print("--- FINAL ANSWER ---")
                print(data["content"])
            elif kind == "done":
                print(f"\n[CLIENT] Session {data['run_id']} done")
                return


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or DEFAULT_QUESTION))
