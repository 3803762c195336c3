"""Tests for app.services.letters: local-first writes with best-effort Drive mirroring."""

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Letter, User
from app.schemas.auth import CurrentUser
from app.services.google_drive import DriveError, DriveFile, TokenExpiredError
from app.services.google_oauth import GoogleOAuthClient, TokenRefreshError
from app.services.letters import (
    CREATE_SYNC_WARNING,
    UPDATE_SYNC_WARNING,
    DriveAccessUnavailableError,
    LetterForbiddenError,
    LetterNotFoundError,
    create_letter,
    delete_letter,
    get_letter,
    list_letters,
    read_drive_copy,
    update_letter,
)


def _oauth(refreshed: str = "fresh-token") -> MagicMock:
    oauth = MagicMock()
    oauth.refresh_access_token = AsyncMock(return_value=refreshed)
    return oauth


def _drive(file_id: str = "drive-file-1") -> MagicMock:
    drive = MagicMock()
    drive.ensure_folder = AsyncMock(return_value="folder-1")
    drive.upsert_file = AsyncMock(return_value=DriveFile(id=file_id, link="https://docs/x"))
    drive.get_file = AsyncMock()
    return drive


class LetterServiceTestCase(unittest.TestCase):
    """Shared in-memory SQLite database with one regular user."""

    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()
        self.owner = self._add_user("g-owner", "owner@example.com", "stored-token", "refresh-1")

    def tearDown(self) -> None:
        self.db.close()
        self.engine.dispose()

    def _add_user(
        self,
        google_id: str,
        email: str,
        access_token: str | None = None,
        refresh_token: str | None = None,
        role: str = "user",
    ) -> User:
        user = User(
            google_id=google_id,
            email=email,
            name=email.split("@")[0],
            role=role,
            google_access_token=access_token,
            google_refresh_token=refresh_token,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def _current(self, user: User) -> CurrentUser:
        return CurrentUser(id=user.id, email=user.email, name=user.name or "", role=user.role)

    def _create(self, user: User, title: str = "Hi", content: str = "<p>Hello</p>", **kwargs):
        oauth = kwargs.pop("oauth", _oauth())
        drive = kwargs.pop("drive", _drive())
        save = kwargs.pop("save", True)
        return asyncio.run(
            create_letter(self.db, self._current(user), title, content, save, oauth, drive)
        )


class TestCreateLetter(LetterServiceTestCase):
    def test_local_only_when_sync_not_requested(self) -> None:
        drive = _drive()
        result = self._create(self.owner, save=False, drive=drive)
        self.assertIsNone(result.warning)
        self.assertIsNone(result.letter.google_drive_id)
        self.assertEqual(result.letter.user_id, self.owner.id)
        drive.ensure_folder.assert_not_called()

    def test_sync_records_drive_id_and_uses_refreshed_token(self) -> None:
        oauth = _oauth("fresh-token")
        drive = _drive("drive-file-1")

        result = self._create(self.owner, oauth=oauth, drive=drive)

        self.assertIsNone(result.warning)
        self.assertEqual(result.letter.title, "Hi")
        self.assertEqual(result.letter.content, "<p>Hello</p>")
        self.assertEqual(result.letter.google_drive_id, "drive-file-1")
        oauth.refresh_access_token.assert_awaited_once_with("refresh-1")
        drive.ensure_folder.assert_awaited_once_with("fresh-token")
        args = drive.upsert_file.call_args[0]
        self.assertEqual(args[:4], ("fresh-token", "Hi", "<p>Hello</p>", "folder-1"))
        self.assertIsNone(args[4])
        self.db.refresh(self.owner)
        self.assertEqual(self.owner.google_access_token, "fresh-token")
        self.assertEqual(self.owner.google_refresh_token, "refresh-1")

    def test_refresh_failure_falls_back_to_stored_token(self) -> None:
        oauth = _oauth()
        oauth.refresh_access_token.side_effect = TokenRefreshError("invalid_grant", 400)
        drive = _drive()

        result = self._create(self.owner, oauth=oauth, drive=drive)

        self.assertIsNone(result.warning)
        drive.ensure_folder.assert_awaited_once_with("stored-token")
        self.db.refresh(self.owner)
        self.assertEqual(self.owner.google_access_token, "stored-token")

    @patch("app.services.google_oauth.httpx.AsyncClient")
    def test_garbled_refresh_response_falls_back_to_stored_token(
        self, mock_client_class: MagicMock
    ) -> None:
        token_client = MagicMock()
        token_client.post = AsyncMock(return_value=httpx.Response(200, text="<html>oops</html>"))
        mock_client_class.return_value.__aenter__ = AsyncMock(return_value=token_client)
        mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
        oauth = GoogleOAuthClient("cid", "secret", "http://localhost/cb")
        drive = _drive("drive-file-1")

        result = self._create(self.owner, oauth=oauth, drive=drive)

        self.assertIsNone(result.warning)
        self.assertEqual(result.letter.google_drive_id, "drive-file-1")
        drive.ensure_folder.assert_awaited_once_with("stored-token")

    def test_no_refresh_token_uses_stored_access_token(self) -> None:
        user = self._add_user("g-2", "two@example.com", "only-access", None)
        oauth = _oauth()
        drive = _drive()
        result = self._create(user, oauth=oauth, drive=drive)
        self.assertIsNone(result.warning)
        oauth.refresh_access_token.assert_not_called()
        drive.ensure_folder.assert_awaited_once_with("only-access")

    def test_missing_access_token_skips_sync_without_warning(self) -> None:
        user = self._add_user("g-3", "three@example.com", None, None)
        drive = _drive()
        result = self._create(user, drive=drive)
        self.assertIsNone(result.warning)
        self.assertIsNone(result.letter.google_drive_id)
        drive.ensure_folder.assert_not_called()
        drive.upsert_file.assert_not_called()

    def test_drive_failure_keeps_letter_and_warns(self) -> None:
        drive = _drive()
        drive.upsert_file.side_effect = DriveError("Drive file create returned 500: boom", 500)

        result = self._create(self.owner, drive=drive)

        self.assertEqual(result.warning, CREATE_SYNC_WARNING)
        self.assertIsNone(result.letter.google_drive_id)
        stored = self.db.get(Letter, result.letter.id)
        self.assertIsNotNone(stored)
        self.assertEqual(stored.title, "Hi")

    def test_expired_token_is_a_sync_failure(self) -> None:
        drive = _drive()
        drive.ensure_folder.side_effect = TokenExpiredError("expired", 401)
        result = self._create(self.owner, drive=drive)
        self.assertEqual(result.warning, CREATE_SYNC_WARNING)
        drive.upsert_file.assert_not_called()

    def test_unexpected_error_is_a_sync_failure(self) -> None:
        drive = _drive()
        drive.upsert_file.side_effect = KeyError("id")
        result = self._create(self.owner, drive=drive)
        self.assertEqual(result.warning, CREATE_SYNC_WARNING)
        self.assertEqual(self.db.query(Letter).count(), 1)


class TestUpdateLetter(LetterServiceTestCase):
    def _update(self, letter_id: int, user: User, save: bool = True, drive=None):
        return asyncio.run(
            update_letter(
                self.db,
                letter_id,
                self._current(user),
                "New title",
                "<h1>New body</h1>",
                save,
                _oauth(),
                drive or _drive(),
            )
        )

    def test_update_overwrites_fields(self) -> None:
        created = self._create(self.owner, save=False)
        result = self._update(created.letter.id, self.owner, save=False)
        self.assertEqual(result.letter.title, "New title")
        self.assertEqual(result.letter.content, "<h1>New body</h1>")
        self.assertIsNone(result.warning)

    def test_existing_mirror_updated_in_place(self) -> None:
        created = self._create(self.owner, drive=_drive("drive-file-1"))
        drive = _drive("drive-file-1")

        result = self._update(created.letter.id, self.owner, drive=drive)

        self.assertIsNone(result.warning)
        self.assertEqual(drive.upsert_file.call_args[0][4], "drive-file-1")
        self.assertEqual(result.letter.google_drive_id, "drive-file-1")

    def test_first_sync_on_update_creates_mirror(self) -> None:
        created = self._create(self.owner, save=False)
        result = self._update(created.letter.id, self.owner, drive=_drive("drive-new"))
        self.assertEqual(result.letter.google_drive_id, "drive-new")

    def test_drive_failure_on_update_keeps_existing_drive_id(self) -> None:
        created = self._create(self.owner, drive=_drive("drive-file-1"))
        drive = _drive()
        drive.upsert_file.side_effect = DriveError("down", 503)

        result = self._update(created.letter.id, self.owner, drive=drive)

        self.assertEqual(result.warning, UPDATE_SYNC_WARNING)
        self.assertEqual(result.letter.title, "New title")
        self.assertEqual(result.letter.google_drive_id, "drive-file-1")

    def test_non_owner_cannot_update(self) -> None:
        created = self._create(self.owner, save=False)
        other = self._add_user("g-other", "other@example.com")
        with self.assertRaises(LetterForbiddenError):
            self._update(created.letter.id, other, save=False)
        self.db.refresh(created.letter)
        self.assertEqual(created.letter.title, "Hi")

    def test_missing_letter(self) -> None:
        with self.assertRaises(LetterNotFoundError):
            self._update(999, self.owner, save=False)


class TestReadAndDelete(LetterServiceTestCase):
    def test_list_is_scoped_to_owner(self) -> None:
        other = self._add_user("g-other", "other@example.com")
        self._create(self.owner, title="Mine", save=False)
        self._create(other, title="Theirs", save=False)
        titles = [letter.title for letter in list_letters(self.db, self._current(self.owner))]
        self.assertEqual(titles, ["Mine"])

    def test_list_most_recent_first(self) -> None:
        self._create(self.owner, title="First", save=False)
        self._create(self.owner, title="Second", save=False)
        titles = [letter.title for letter in list_letters(self.db, self._current(self.owner))]
        self.assertEqual(titles, ["Second", "First"])

    def test_admin_can_read_any_letter(self) -> None:
        created = self._create(self.owner, save=False)
        admin = self._add_user("g-admin", "admin@example.com", role="admin")
        letter = get_letter(self.db, created.letter.id, self._current(admin))
        self.assertEqual(letter.id, created.letter.id)

    def test_other_user_forbidden(self) -> None:
        created = self._create(self.owner, save=False)
        other = self._add_user("g-other", "other@example.com")
        with self.assertRaises(LetterForbiddenError):
            get_letter(self.db, created.letter.id, self._current(other))

    def test_delete_is_local_only(self) -> None:
        drive = _drive()
        created = self._create(self.owner, drive=drive)
        delete_letter(self.db, created.letter.id, self._current(self.owner))
        self.assertIsNone(self.db.get(Letter, created.letter.id))
        drive.get_file.assert_not_called()

    def test_read_drive_copy_uses_owner_token(self) -> None:
        created = self._create(self.owner, drive=_drive("drive-file-1"))
        drive = _drive()
        drive.get_file.return_value = MagicMock(id="drive-file-1")

        asyncio.run(
            read_drive_copy(self.db, created.letter.id, self._current(self.owner), drive)
        )

        # the sync refreshed and stored the token before mirroring
        drive.get_file.assert_awaited_once_with("fresh-token", "drive-file-1")

    def test_read_drive_copy_without_mirror(self) -> None:
        created = self._create(self.owner, save=False)
        with self.assertRaises(LetterNotFoundError):
            asyncio.run(
                read_drive_copy(self.db, created.letter.id, self._current(self.owner), _drive())
            )

    def test_read_drive_copy_without_token(self) -> None:
        created = self._create(self.owner, drive=_drive("drive-file-1"))
        self.owner.google_access_token = None
        self.db.commit()
        with self.assertRaises(DriveAccessUnavailableError):
            asyncio.run(
                read_drive_copy(self.db, created.letter.id, self._current(self.owner), _drive())
            )


if __name__ == "__main__":
    unittest.main()
