# tools/stt_probe.py
"""
Manual probe: connect to the STT service and print every notification as JSONL.

Reads .env (python-dotenv) then the environment:
    STT_AUTH_TOKEN   (required)
    STT_API_DOMAIN, STT_SECURE, STT_LOG_LEVEL, STT_MAX_RETRY_ATTEMPTS

    PYTHONPATH=client python tools/stt_probe.py --room-id R --member-id M
"""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import asdict
from datetime import datetime
from typing import Any

from dotenv import load_dotenv

from config import ClientOptions, MemberIdentity
from connection.close_codes import CloseOutcome
from connection.errors import STTClientError
from connection.manager import ConnectionManager
from connection.token_source import TokenStore
from observability.logger import log_event
from protocol.messages import STTResult


def _jsonable(result: STTResult) -> dict[str, Any]:
    payload = asdict(result)
    if isinstance(result.timestamp, datetime):
        payload["timestamp"] = result.timestamp.isoformat()
    return payload


async def main() -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Print STT results for a room member.")
    parser.add_argument("--room-id", required=True)
    parser.add_argument("--member-id", required=True)
    parser.add_argument("--room-name")
    parser.add_argument("--member-name")
    parser.add_argument("--seconds", type=float, default=60.0, help="how long to listen")
    args = parser.parse_args()

    token = os.environ.get("STT_AUTH_TOKEN")
    if not token:
        print("STT_AUTH_TOKEN is not set", file=sys.stderr)
        return 2

    identity = MemberIdentity(
        room_id=args.room_id,
        room_name=args.room_name,
        member_id=args.member_id,
        member_name=args.member_name,
    )
    config = ClientOptions.load_from_env().to_config(identity)

    done = asyncio.Event()
    manager = ConnectionManager(config, TokenStore(token))

    def on_error(err: STTClientError) -> None:
        log_event({"event_type": "error", "error": str(err)})
        done.set()

    def on_closed(outcome: CloseOutcome) -> None:
        log_event({
            "event_type": "closed",
            "code": outcome.code,
            "severity": outcome.severity.value,
            "should_reconnect": outcome.should_reconnect,
        })

    manager.opened.add(lambda _: log_event({"event_type": "opened"}))
    manager.result_received.add(
        lambda r: log_event({"event_type": "result", "result": _jsonable(r)})
    )
    manager.error.add(on_error)
    manager.closed.add(on_closed)

    try:
        await asyncio.wait_for(done.wait(), timeout=args.seconds)
    except asyncio.TimeoutError:
        pass
    finally:
        manager.dispose()
        await asyncio.sleep(0.1)

    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
