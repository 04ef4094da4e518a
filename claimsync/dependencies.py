"""FastAPI dependencies resolving the objects wired by create_app."""

from fastapi import Request

from claimsync.config import Settings
from claimsync.services.sync_initiator import SyncInitiator
from claimsync.services.sync_receiver import SyncReceiver
from claimsync.storage import StorageService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


def get_initiator(request: Request) -> SyncInitiator:
    return request.app.state.initiator


def get_receiver(request: Request) -> SyncReceiver:
    return request.app.state.receiver
