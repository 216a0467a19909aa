"""
Admin SDK Data Transfer API, used to hand a departing user's Drive
documents over to someone else.
"""
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Self
import logging
import time

from googleapiclient.errors import HttpError

from .resources import GoogleWorkSpaceResourceBase
from .access import gws
from .errors import TransferError
from .log import log_api_call

logger = logging.getLogger(__name__)

_get_service = partial(gws.get_service, "admin", "datatransfer_v1")

DOCS_APPLICATION_ID = 55656082996
STATUS_COMPLETED = "completed"
STATUS_IN_PROGRESS = "inProgress"
POLL_INTERVAL = 5.0
MAX_POLLS = 5
MAX_RETRIES = 5


@dataclass
class DataTransfer(GoogleWorkSpaceResourceBase):
    """
    https://developers.google.com/admin-sdk/data-transfer/reference/rest/v1/transfers
    """
    kind: str|None = field(default=None)
    etag: str|None = field(default=None)
    id: str|None = field(default=None)
    oldOwnerUserId: str|None = field(default=None)
    newOwnerUserId: str|None = field(default=None)
    applicationDataTransfers: List[dict]|None = field(default=None)
    overallTransferStatusCode: str|None = field(default=None, metadata={"name": "Status"})
    requestTime: str|None = field(default=None)

    @property
    def completed(self) -> bool:
        return self.overallTransferStatusCode == STATUS_COMPLETED

    @property
    def in_progress(self) -> bool:
        return self.overallTransferStatusCode == STATUS_IN_PROGRESS

    @staticmethod
    def insert(transfer: Self|dict) -> Self:
        body = transfer.trim() if isinstance(transfer, DataTransfer) else dict(transfer)
        log_api_call("insert", "transfers", oldOwnerUserId=body.get('oldOwnerUserId'),
                     newOwnerUserId=body.get('newOwnerUserId'))
        return DataTransfer.from_response(_get_service().transfers().insert(body=body).execute())

    @staticmethod
    def get(transfer_id: str) -> Self:
        log_api_call("get", "transfers", dataTransferId=transfer_id)
        return DataTransfer.from_response(_get_service().transfers().get(dataTransferId=transfer_id).execute())


def documents_transfer(from_id: str, to_id: str) -> DataTransfer:
    """Transfer request for both private and shared Drive documents."""
    return DataTransfer(
        oldOwnerUserId=from_id,
        newOwnerUserId=to_id,
        applicationDataTransfers=[{
            "applicationId": DOCS_APPLICATION_ID,
            "applicationTransferParams": [{"key": "PRIVACY_LEVEL", "value": ["PRIVATE", "SHARED"]}],
        }],
    )


def transfer_documents(from_id: str, to_id: str,
                       poll_interval: float = POLL_INTERVAL,
                       max_polls: int = MAX_POLLS,
                       max_retries: int = MAX_RETRIES,
                       sleep: Callable[[float], None] = time.sleep) -> DataTransfer:
    """
    Start a Drive documents transfer and poll until it completes.

    A failed insert, or a transfer that is neither completed nor still running
    after max_polls polls, is retried up to max_retries times with
    poll_interval between attempts.  A transfer still in progress after
    max_polls is returned as is, it carries on server side.
    """
    attempt = 0
    while True:
        try:
            transfer = DataTransfer.insert(documents_transfer(from_id, to_id))
        except HttpError as e:
            if attempt >= max_retries:
                raise TransferError(f"unable to start document transfer: {e}") from e
            attempt += 1
            logger.warning("transfer insert failed, retry %d/%d: %s", attempt, max_retries, e)
            sleep(poll_interval)
            continue

        status = transfer
        for _ in range(max_polls):
            sleep(poll_interval)
            try:
                status = DataTransfer.get(transfer.id)
            except HttpError as e:
                logger.debug("transfer status poll failed: %s", e)
                continue
            if status.completed:
                logger.info("transfer %s complete", transfer.id)
                return status
        if status.in_progress:
            logger.info("transfer %s running long", transfer.id)
            return status
        if attempt >= max_retries:
            raise TransferError(f"transfer failed (status: {status.overallTransferStatusCode})")
        attempt += 1
        logger.warning("transfer %s did not complete (status: %s), retry %d/%d",
                       transfer.id, status.overallTransferStatusCode, attempt, max_retries)
