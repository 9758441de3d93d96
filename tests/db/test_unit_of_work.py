"""Tests for UnitOfWork repository access and transaction handling."""

from unittest.mock import MagicMock, patch

import pytest

from homster.db import UnitOfWork
from homster.db.repositories import UserRepository, VendorRepository, WorkerRepository
from homster.models.account import Role


@pytest.fixture
def mock_session():
    session = MagicMock()
    with patch("homster.db.unit_of_work.DatabaseConnection") as mock_db:
        mock_db.get_session.return_value = session
        yield session


def test_repositories_are_cached(mock_session):
    with UnitOfWork() as uow:
        assert uow.vendors is uow.vendors
        assert uow.vendors.session is mock_session


def test_accounts_by_role(mock_session):
    with UnitOfWork() as uow:
        assert isinstance(uow.accounts(Role.USER), UserRepository)
        assert isinstance(uow.accounts(Role.VENDOR), VendorRepository)
        assert isinstance(uow.accounts(Role.WORKER), WorkerRepository)


def test_commit_and_close(mock_session):
    with UnitOfWork() as uow:
        uow.commit()

    mock_session.commit.assert_called_once()
    mock_session.rollback.assert_not_called()
    mock_session.close.assert_called_once()


def test_rollback_on_error(mock_session):
    with pytest.raises(ValueError):
        with UnitOfWork():
            raise ValueError("boom")

    mock_session.rollback.assert_called_once()
    mock_session.close.assert_called_once()


def test_session_outside_context():
    with pytest.raises(RuntimeError):
        UnitOfWork().session
