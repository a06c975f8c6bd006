from fastapi import Request

from ...core.manager import DispenserManager


def get_manager(req: Request) -> DispenserManager:
    return req.app.state.manager
