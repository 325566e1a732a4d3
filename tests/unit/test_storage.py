import pytest
from datetime import date
from unittest.mock import AsyncMock, patch
from sqlalchemy.exc import IntegrityError, OperationalError
from src.ingestion.storage import record_usage


def unique_violation():
    return IntegrityError(
        "INSERT INTO embedding_usage ...",
        {},
        Exception("duplicate key value violates unique constraint \"uq_embedding_usage_owner_day\""),
    )


@pytest.mark.asyncio
async def test_concurrent_first_insert_is_retried_as_update():
    with patch("src.ingestion.storage._add_usage", new_callable=AsyncMock) as add_usage, \
         patch("src.ingestion.storage.log") as mock_log:
        add_usage.side_effect = [unique_violation(), None]

        await record_usage("owner-1", date(2024, 5, 1), embedding_tokens=40)

        assert add_usage.await_count == 2
        add_usage.assert_awaited_with("owner-1", date(2024, 5, 1), 40, 0)
        mock_log.warning.assert_not_called()


@pytest.mark.asyncio
async def test_repeated_conflict_is_logged_not_raised():
    with patch("src.ingestion.storage._add_usage", new_callable=AsyncMock) as add_usage, \
         patch("src.ingestion.storage.log") as mock_log:
        add_usage.side_effect = unique_violation()

        await record_usage("owner-1", date(2024, 5, 1), embedding_tokens=40)

        assert add_usage.await_count == 2
        assert mock_log.warning.call_args.args[0] == "usage_update_failed"


@pytest.mark.asyncio
async def test_other_database_errors_are_not_retried():
    with patch("src.ingestion.storage._add_usage", new_callable=AsyncMock) as add_usage, \
         patch("src.ingestion.storage.log") as mock_log:
        add_usage.side_effect = OperationalError("UPDATE embedding_usage ...", {}, Exception("db down"))

        await record_usage("owner-1", date(2024, 5, 1), chat_tokens=7)

        assert add_usage.await_count == 1
        mock_log.warning.assert_called_once()


@pytest.mark.asyncio
async def test_zero_usage_touches_nothing():
    with patch("src.ingestion.storage._add_usage", new_callable=AsyncMock) as add_usage:
        await record_usage("owner-1", date(2024, 5, 1))
        add_usage.assert_not_called()
