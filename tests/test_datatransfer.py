from unittest.mock import MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

from gwsadmin import datatransfer
from gwsadmin.datatransfer import DOCS_APPLICATION_ID, documents_transfer, transfer_documents
from gwsadmin.errors import TransferError


def http_error(status=500):
    return HttpError(httplib2.Response({"status": status}), b'{"error": {"message": "backend error"}}')


@pytest.fixture
def transfers(monkeypatch):
    svc = MagicMock()
    monkeypatch.setattr(datatransfer, "_get_service", lambda: svc)
    return svc.transfers.return_value


def no_sleep(seconds):
    pass


def test_documents_transfer():
    t = documents_transfer("1", "2")
    body = t.trim()
    assert(body["oldOwnerUserId"] == "1")
    assert(body["applicationDataTransfers"][0]["applicationId"] == DOCS_APPLICATION_ID)


def test_completes(transfers):
    transfers.insert.return_value.execute.return_value = {"id": "t1", "overallTransferStatusCode": "new"}
    transfers.get.return_value.execute.side_effect = [
        {"id": "t1", "overallTransferStatusCode": "inProgress"},
        {"id": "t1", "overallTransferStatusCode": "completed"},
    ]
    result = transfer_documents("1", "2", sleep=no_sleep)
    assert(result.completed)
    assert(transfers.get.return_value.execute.call_count == 2)


def test_running_long(transfers):
    transfers.insert.return_value.execute.return_value = {"id": "t1"}
    transfers.get.return_value.execute.return_value = {"id": "t1", "overallTransferStatusCode": "inProgress"}
    result = transfer_documents("1", "2", max_polls=3, sleep=no_sleep)
    assert(result.in_progress)
    assert(transfers.insert.return_value.execute.call_count == 1)
    assert(transfers.get.return_value.execute.call_count == 3)


def test_insert_retries_then_fails(transfers):
    transfers.insert.return_value.execute.side_effect = http_error()
    sleeps = []
    with pytest.raises(TransferError):
        transfer_documents("1", "2", max_retries=2, sleep=sleeps.append)
    assert(transfers.insert.return_value.execute.call_count == 3)
    assert(len(sleeps) == 2)


def test_failed_transfer_retried(transfers):
    transfers.insert.return_value.execute.side_effect = [http_error(), {"id": "t1"}, {"id": "t2"}]
    transfers.get.return_value.execute.side_effect = [
        {"id": "t1", "overallTransferStatusCode": "failed"},
        {"id": "t2", "overallTransferStatusCode": "completed"},
    ]
    result = transfer_documents("1", "2", max_polls=1, sleep=no_sleep)
    assert(result.id == "t2")
    assert(result.completed)
