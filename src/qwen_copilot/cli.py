"""Qwen Copilot CLI

에디터 대신 터미널에서 로그인, 로그아웃, 상태 확인, 채팅을 수행.

Usage:
    python -m qwen_copilot login
    python -m qwen_copilot status
    python -m qwen_copilot chat "이 함수 리뷰해줘"
    python -m qwen_copilot logout
"""

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import webbrowser
from datetime import datetime

from rich.console import Console

from qwen_copilot.auth import (
    AuthenticationError,
    AuthSession,
    CancellationToken,
    DeviceFlowCancelledError,
    DeviceFlowTimeoutError,
    KeyringVault,
    TokenStore,
    TransportError,
)
from qwen_copilot.auth.flows.device_code import DeviceCodeResponse
from qwen_copilot.clients import QwenClient
from qwen_copilot.models import QWEN_MODELS, get_model, resolve_max_tokens, resolve_temperature

logger = logging.getLogger(__name__)
console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="qwen-copilot", description="Qwen Copilot CLI")
    parser.add_argument("--debug", action="store_true", help="디버그 로그 출력")
    parser.add_argument(
        "--keyring",
        action="store_true",
        help="자격증명을 OS keyring에 저장 (기본: ~/.qwen/oauth_creds.json)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Device code 로그인")
    login.add_argument("--no-browser", action="store_true", help="브라우저 자동 열기 끔")
    login.add_argument("--force", action="store_true", help="이미 로그인돼 있어도 다시 로그인")

    subparsers.add_parser("logout", help="저장된 자격증명 삭제")
    subparsers.add_parser("status", help="인증 상태 출력")

    chat = subparsers.add_parser("chat", help="프롬프트 1회 스트리밍")
    chat.add_argument("prompt")
    chat.add_argument("--model", default="qwen3-coder-plus", choices=sorted(QWEN_MODELS))
    chat.add_argument("--max-tokens", type=int, default=None)
    chat.add_argument("--temperature", type=float, default=None)

    return parser


def _install_cancel_handler(token: CancellationToken) -> None:
    # Windows 이벤트 루프는 add_signal_handler 미지원
    with contextlib.suppress(NotImplementedError, RuntimeError):
        asyncio.get_running_loop().add_signal_handler(signal.SIGINT, token.cancel)


async def cmd_login(session: AuthSession, args: argparse.Namespace) -> int:
    if session.is_authenticated() and not args.force:
        console.print("[green]Already authenticated with Qwen.[/green]")
        return 0

    token = CancellationToken()
    _install_cancel_handler(token)

    def on_auth_uri(device_response: DeviceCodeResponse) -> None:
        session.provider.oauth.display_instructions(device_response)
        if not args.no_browser:
            webbrowser.open(device_response.display_uri)

    try:
        with console.status("[bold green]인증 대기 중...[/bold green]", spinner="dots") as status:
            await session.login(
                on_auth_uri=on_auth_uri,
                on_progress=lambda message: status.update(f"[bold green]{message}[/bold green]"),
                cancellation_token=token,
            )
    except DeviceFlowCancelledError:
        console.print("[yellow]로그인이 취소되었습니다.[/yellow]")
        return 130
    except DeviceFlowTimeoutError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    console.print("[bold green][OK] Successfully authenticated with Qwen![/bold green]")
    return 0


async def cmd_logout(session: AuthSession, args: argparse.Namespace) -> int:
    await session.clear_credentials()
    console.print("Logged out from Qwen.")
    return 0


async def cmd_status(session: AuthSession, args: argparse.Namespace) -> int:
    if not session.is_authenticated():
        console.print("[yellow]Not authenticated. Run 'qwen-copilot login'.[/yellow]")
        return 1

    credentials = session.credentials
    expires = datetime.fromtimestamp(credentials.expires_at / 1000)
    console.print("[green]Authenticated[/green]")
    console.print(f"  API base URL: {session.get_base_url()}")
    console.print(f"  Token expires: {expires:%Y-%m-%d %H:%M:%S}")
    return 0


async def cmd_chat(session: AuthSession, args: argparse.Namespace) -> int:
    client = QwenClient(session)
    messages = [{"role": "user", "content": args.prompt}]
    options = {"max_tokens": args.max_tokens, "temperature": args.temperature}
    max_tokens = (
        resolve_max_tokens(get_model(args.model), options) if args.max_tokens else None
    )
    logger.debug("Estimated prompt tokens: %d", await client.count_tokens(messages))

    async for event in client.stream_chat_completion(
        model=args.model,
        messages=messages,
        max_tokens=max_tokens,
        temperature=resolve_temperature(options),
    ):
        if event.type == "text":
            console.print(event.text, end="", markup=False, highlight=False)
        else:
            console.print(
                f"\n[bold cyan]tool_call[/bold cyan] {event.name} ({event.call_id}): "
                f"{json.dumps(event.input, ensure_ascii=False)}"
            )
    console.print()
    return 0


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "status": cmd_status,
    "chat": cmd_chat,
}


async def run(args: argparse.Namespace) -> int:
    store = TokenStore(vault=KeyringVault() if args.keyring else None)
    session = AuthSession(store=store)
    await session.load_credentials()

    try:
        return await COMMANDS[args.command](session, args)
    except (AuthenticationError, TransportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))
