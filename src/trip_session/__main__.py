"""
trip_session.__main__

Entrypoint for `python -m trip_session`.

Responsibilities:
- Boot the session layer (restore from the persisted credential).
- Optionally log in, join rooms, and tail the notification feed until interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import os

from trip_session.client import create_session_layer
from trip_session.notifications.reducers import NotificationAction, NotificationState
from trip_session.settings import get_settings


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="trip_session", description=__doc__)
    parser.add_argument("--email", help="log in with this account if no session is restored")
    parser.add_argument(
        "--password",
        default=os.environ.get("TRIP_PASSWORD"),
        help="account password (defaults to $TRIP_PASSWORD)",
    )
    parser.add_argument("--room", action="append", default=[], help="room to join (repeatable)")
    parser.add_argument("--logout", action="store_true", help="log out and exit")
    return parser.parse_args(argv)


def _print_notification(state: NotificationState, action: NotificationAction) -> None:
    if action is not NotificationAction.add or not state.notifications:
        return
    n = state.notifications[0]
    print(f"[{n.timestamp:%H:%M:%S}] {n.kind:<12} {n.title}: {n.message} (unread={state.unread_count})")


async def _run(args: argparse.Namespace) -> int:
    layer = create_session_layer(settings=get_settings())
    try:
        session = await layer.start()
        if args.logout:
            await layer.session.logout()
            print("logged out")
            return 0

        if not session.authenticated and args.email:
            result = await layer.session.login(args.email, args.password or "")
            if not result.success:
                print(f"login failed: {result.message}")
                return 1
            await layer.channel.wait_idle()

        principal = layer.session.principal
        if principal is None:
            print("not authenticated")
            return 1
        print(
            f"authenticated as {principal.name or principal.id} "
            f"(plan={principal.plan_tier}, quota={layer.session.remaining_quota()}, "
            f"channel={layer.channel.status.value})"
        )

        layer.notifications.subscribe(_print_notification)
        for room in args.room:
            await layer.channel.join_room(room)
        await asyncio.Event().wait()
        return 0
    finally:
        await layer.aclose()


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    try:
        raise SystemExit(asyncio.run(_run(args)))
    except KeyboardInterrupt:
        raise SystemExit(130) from None


if __name__ == "__main__":
    main()
