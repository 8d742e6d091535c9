"""Entra ID user lifecycle operations (list, delete, restore)."""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

import requests

from entra_admin import audit
from entra_admin.console import Reporter
from entra_admin.config.settings import DEFAULT_EXTENSION_ATTRIBUTE

from .client import GraphClient
from .exceptions import DuplicateUserError, GraphError, UserNotFoundError

logger = logging.getLogger(__name__)

LOCAL_ACCOUNT = "LocalAccount"
DELETED_USERS_PATH = "/directory/deletedItems/microsoft.graph.user"
LOCAL_ACCOUNT_FILTER = f"creationType eq '{LOCAL_ACCOUNT}'"

# Errors that end a single operation with a failure signal instead of propagating
OPERATION_ERRORS = (GraphError, requests.RequestException, ValueError, KeyError)


@dataclass
class DirectoryUser:
    """A user record as returned by Microsoft Graph."""
    id: Optional[str] = None
    display_name: Optional[str] = None
    mail: Optional[str] = None
    user_principal_name: Optional[str] = None
    webportal_id: Optional[Any] = None
    creation_type: Optional[str] = None
    created_at: Optional[str] = None
    deleted_at: Optional[str] = None

    @classmethod
    def from_graph(cls, payload: dict, extension_attribute: str = DEFAULT_EXTENSION_ATTRIBUTE) -> "DirectoryUser":
        return cls(
            id=payload.get("id"),
            display_name=payload.get("displayName"),
            mail=payload.get("mail"),
            user_principal_name=payload.get("userPrincipalName"),
            webportal_id=payload.get(extension_attribute),
            creation_type=payload.get("creationType"),
            created_at=payload.get("createdDateTime"),
            deleted_at=payload.get("deletedDateTime"),
        )

    @property
    def email(self) -> Optional[str]:
        return self.mail or self.user_principal_name

    @property
    def is_local_account(self) -> bool:
        return self.creation_type == LOCAL_ACCOUNT

    def has_webportal_id(self, webportal_id: Any) -> bool:
        """Graph returns the extension as a number; operators type it as text."""
        if self.webportal_id is None or webportal_id is None:
            return False
        return str(self.webportal_id).strip() == str(webportal_id).strip()


class UserService:
    """Service for listing, deleting and restoring Entra ID users."""

    def __init__(
        self,
        client: GraphClient,
        reporter: Optional[Reporter] = None,
        extension_attribute: str = DEFAULT_EXTENSION_ATTRIBUTE,
        page_size: int = 999,
        operator: str = "cli",
    ):
        """Initialize user service.

        Args:
            client: Graph client with a token provider
            reporter: Presentation layer for spinners and tables
            extension_attribute: Graph attribute holding the webportal id
            page_size: $top used for every listing
            operator: Name recorded in the audit trail
        """
        self.client = client
        self.reporter = reporter or Reporter()
        self.extension_attribute = extension_attribute
        self.page_size = page_size
        self.operator = operator

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────
    def _select(self, *fields: str) -> str:
        return ",".join(field if field != "webportal_id" else self.extension_attribute for field in fields)

    def _fetch(self, path: str, select: str, filter_: Optional[str] = None, top: bool = True) -> List[DirectoryUser]:
        params: dict[str, Any] = {"$select": select}
        if filter_:
            params["$filter"] = filter_
        if top:
            params["$top"] = self.page_size
        resp = self.client.get(path, params=params)
        payload = resp.json() or {}
        return [DirectoryUser.from_graph(item, self.extension_attribute) for item in payload.get("value") or []]

    def fetch_local_accounts(self) -> List[DirectoryUser]:
        """Return up to page_size LocalAccount users (raises on API errors)."""
        return self._fetch(
            "/users",
            self._select("id", "mail", "userPrincipalName", "displayName", "creationType", "webportal_id"),
            filter_=LOCAL_ACCOUNT_FILTER,
        )

    def find_local_account_by_email(self, email: str) -> Optional[DirectoryUser]:
        """Match mail or userPrincipalName case-insensitively against LocalAccount users."""
        wanted = email.strip().lower()
        for user in self.fetch_local_accounts():
            if (user.mail and user.mail.lower() == wanted) or (
                user.user_principal_name and user.user_principal_name.lower() == wanted
            ):
                return user
        return None

    def list_users(self) -> List[DirectoryUser]:
        """Fetch and render active users; returns [] on failure."""
        self.client.ensure_token()
        with self.reporter.spinner("Fetching LocalAccount users...") as spinner:
            try:
                users = self._fetch(
                    "/users",
                    self._select(
                        "displayName", "mail", "userPrincipalName", "webportal_id", "creationType", "createdDateTime"
                    ),
                )
            except OPERATION_ERRORS as e:
                spinner.fail("Failed to fetch users.")
                logger.error("Error listing users: %s", e)
                return []
            spinner.succeed("Fetched active users.")

        if not users:
            logger.warning("No users found.")
            return users

        self.reporter.render_users(
            users,
            title="Active Users",
            type_header="Account_Type",
            timestamp_header="createdDateTime",
            timestamp_attr="created_at",
        )
        logger.info("Listed %d active user(s).", len(users))
        return users

    def list_deleted_users(self) -> List[DirectoryUser]:
        """Fetch and render soft-deleted users; returns [] on failure."""
        self.client.ensure_token()
        with self.reporter.spinner("Fetching deleted users...") as spinner:
            try:
                users = self._fetch(
                    DELETED_USERS_PATH,
                    self._select(
                        "displayName", "mail", "userPrincipalName", "webportal_id", "creationType", "deletedDateTime"
                    ),
                )
            except OPERATION_ERRORS as e:
                spinner.fail("Failed to fetch deleted users.")
                logger.error("Error listing deleted users: %s", e)
                return []
            spinner.succeed("Fetched deleted users.")

        if not users:
            logger.warning("No deleted users found.")
            return users

        self.reporter.render_users(
            users,
            title="Deleted Users",
            type_header="Creation_Type",
            timestamp_header="deletedDateTime",
            timestamp_attr="deleted_at",
        )
        logger.info("Listed %d deleted user(s).", len(users))
        return users

    # ─────────────────────────────────────────────────────────────────────
    # Deletion
    # ─────────────────────────────────────────────────────────────────────
    def delete_user_by_webportal_id(self, webportal_id: Any) -> bool:
        """Delete the LocalAccount user carrying the given webportal id.

        Returns:
            True when a user was found and deleted, False otherwise
        """
        self.client.ensure_token()
        with self.reporter.spinner(f"Deleting user with Webportal ID: {webportal_id}...") as spinner:
            try:
                users = self._fetch(
                    "/users",
                    self._select("id", "mail", "userPrincipalName", "webportal_id", "creationType"),
                    filter_=f"{self.extension_attribute} eq '{webportal_id}' and {LOCAL_ACCOUNT_FILTER}",
                    top=False,
                )
                if not users:
                    raise UserNotFoundError(f"No LocalAccount user found with Webportal ID: {webportal_id}")

                user = users[0]
                self.client.delete(f"/users/{user.id}")
            except UserNotFoundError as e:
                spinner.fail(str(e))
                audit.safe_log_event(
                    "delete", str(webportal_id), operator=self.operator,
                    details={"reason": "not_found"}, success=False,
                )
                return False
            except OPERATION_ERRORS as e:
                spinner.fail(f"Failed to delete user with Webportal ID: {webportal_id}")
                logger.error("Error deleting user: %s", e)
                audit.safe_log_event(
                    "delete", str(webportal_id), operator=self.operator,
                    details={"error": str(e)}, success=False,
                )
                return False

            spinner.succeed(f"Deleted user: {user.email} (Webportal ID: {webportal_id})")
            audit.safe_log_event(
                "delete", str(webportal_id), operator=self.operator,
                details={"user_id": user.id, "mail": user.email}, success=True,
            )
            return True

    def delete_multiple_users(self, webportal_ids: Iterable[Any]) -> int:
        """Delete users one by one in input order, continuing past failures.

        Returns:
            Number of users deleted
        """
        count = 0
        for webportal_id in webportal_ids:
            if self.delete_user_by_webportal_id(webportal_id):
                count += 1

        if count:
            logger.info("%d user(s) deleted. Fetching updated user list...", count)
            self.list_users()
        else:
            logger.warning("No users were deleted.")
        return count

    def delete_local_account_user_by_id(self, user_id: str) -> bool:
        """Delete a user by Graph id after re-checking it is a LocalAccount."""
        self.client.ensure_token()
        with self.reporter.spinner(f"Deleting user with ID: {user_id}...") as spinner:
            try:
                resp = self.client.get(
                    f"/users/{user_id}",
                    params={"$select": "id,userPrincipalName,creationType"},
                )
                payload = resp.json()
                if not payload:
                    spinner.fail(f"User not found with ID: {user_id}")
                    audit.safe_log_event(
                        "delete", user_id, operator=self.operator, details={"reason": "not_found"}, success=False
                    )
                    return False

                user = DirectoryUser.from_graph(payload, self.extension_attribute)
                if not user.is_local_account:
                    spinner.fail(f"User {user.user_principal_name} is not a LocalAccount.")
                    audit.safe_log_event(
                        "delete", user_id, operator=self.operator,
                        details={"reason": "not_local_account"}, success=False,
                    )
                    return False

                self.client.delete(f"/users/{user_id}")
            except OPERATION_ERRORS as e:
                spinner.fail(f"Failed to delete user: {user_id}")
                logger.error("Error deleting user: %s", e)
                audit.safe_log_event(
                    "delete", user_id, operator=self.operator, details={"error": str(e)}, success=False
                )
                return False

            spinner.succeed(f"Deleted LocalAccount user: {user.user_principal_name}")
            audit.safe_log_event(
                "delete", user_id, operator=self.operator,
                details={"user_principal_name": user.user_principal_name}, success=True,
            )
            return True

    def delete_all_local_account_users(self) -> int:
        """Delete every LocalAccount user.

        Returns:
            Number of users processed (not the number actually deleted)
        """
        self.client.ensure_token()
        with self.reporter.spinner("Fetching LocalAccount users...") as spinner:
            try:
                users = self._fetch(
                    "/users",
                    self._select("id", "userPrincipalName", "creationType"),
                    filter_=LOCAL_ACCOUNT_FILTER,
                )
            except OPERATION_ERRORS as e:
                spinner.fail("Failed to fetch LocalAccount users.")
                logger.error("Error: %s", e)
                return 0
            spinner.succeed(f"Fetched {len(users)} LocalAccount user(s).")

        for user in users:
            self.delete_local_account_user_by_id(user.id)

        logger.info("Deleted %d LocalAccount user(s).", len(users))
        return len(users)

    # ─────────────────────────────────────────────────────────────────────
    # Restoration
    # ─────────────────────────────────────────────────────────────────────
    def restore_deleted_user_by_webportal_id(self, webportal_id: Any) -> bool:
        """Restore a soft-deleted LocalAccount user unless its mail is already active.

        Returns:
            True when the restore call succeeded, False otherwise
        """
        self.client.ensure_token()
        with self.reporter.spinner(f"Restoring user with Webportal ID: {webportal_id}...") as spinner:
            try:
                active_users = self.fetch_local_accounts()
                deleted_users = self._fetch(
                    DELETED_USERS_PATH,
                    self._select("id", "displayName", "mail", "userPrincipalName", "webportal_id"),
                    filter_=LOCAL_ACCOUNT_FILTER,
                )

                matched = next((u for u in deleted_users if u.has_webportal_id(webportal_id)), None)
                if not matched:
                    raise UserNotFoundError(f"No deleted user found with Webportal ID: {webportal_id}")

                existing = None
                if matched.mail:
                    existing = next((u for u in active_users if u.mail == matched.mail), None)
                if existing:
                    raise DuplicateUserError(
                        f"This user ({existing.mail}) is already present in Entra ID: "
                        f"old Id {matched.webportal_id} & new Id: {existing.webportal_id}"
                    )

                self.client.post(f"/directory/deletedItems/{matched.id}/restore", json={})
            except (UserNotFoundError, DuplicateUserError) as e:
                spinner.fail(str(e))
                audit.safe_log_event(
                    "restore", str(webportal_id), operator=self.operator,
                    details={"reason": "duplicate" if isinstance(e, DuplicateUserError) else "not_found"},
                    success=False,
                )
                return False
            except OPERATION_ERRORS as e:
                spinner.fail(f"Failed to restore user with Webportal ID: {webportal_id}")
                logger.error("Error: %s", e)
                audit.safe_log_event(
                    "restore", str(webportal_id), operator=self.operator,
                    details={"error": str(e)}, success=False,
                )
                return False

            spinner.succeed(f"Restored user: {matched.email}")
            audit.safe_log_event(
                "restore", str(webportal_id), operator=self.operator,
                details={"user_id": matched.id, "mail": matched.email}, success=True,
            )
            return True

    def restore_multiple_users(self, webportal_ids: Iterable[Any]) -> int:
        """Restore users one by one in input order, continuing past failures.

        Returns:
            Number of users restored
        """
        count = 0
        for webportal_id in webportal_ids:
            if self.restore_deleted_user_by_webportal_id(webportal_id):
                count += 1

        if count:
            logger.info("%d user(s) restored. Fetching updated active user list...", count)
            self.list_users()
        else:
            logger.warning("No users were restored.")
        return count
