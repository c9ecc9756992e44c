from fastapi import Request

from app.services.workflow import BookingWorkflow
from app.storage.base import Storage


def get_workflow(request: Request) -> BookingWorkflow:
    return request.app.state.workflow


def get_storage(request: Request) -> Storage:
    return request.app.state.storage
