import asyncio
from datetime import date
from pathlib import Path
from typing import Optional


def new_users_filename(today: Optional[date] = None) -> str:
    return f"new-users-{(today or date.today()).isoformat()}.xlsx"


def onboarding_filename(days: int) -> str:
    return f"onboarding-last-{days}-days.xlsx"


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def save_download(directory: str, filename: str, data: bytes) -> Path:
    """Write an exported file under ``directory`` without blocking the loop."""
    path = Path(directory).expanduser() / filename
    await asyncio.to_thread(_write, path, data)
    return path
