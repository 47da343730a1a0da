"""
User profile documents (``users/{uid}``) and their role mirror (``roles/{uid}``).
"""

from typing import Any, Dict, List, Optional

from models.document import SERVER_TIMESTAMP, WriteOp
from models.profile import (ROLES_COLLECTION, USERS_COLLECTION, Role,
                            UserProfile)
from models.session import Identity
from services.document_store import DocumentStore
from utils.logging import setup_logger

logger = setup_logger(__name__)


class ProfileRepository:
    """Reads and writes profiles; role and status changes update the mirror too."""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get(self, uid: str) -> Optional[UserProfile]:
        document = self.store.get(USERS_COLLECTION, uid)
        if document is None:
            return None
        return UserProfile.from_document(uid, document.data)

    def ensure(self, identity: Identity) -> UserProfile:
        """
        Profile of a signed-in identity, created as an enabled viewer on the
        first sign-in.
        """
        profile = self.get(identity.uid)
        if profile is not None:
            return profile

        data = {
            "email": identity.email,
            "displayName": identity.display_name,
            "role": Role.VIEWER.value,
            "disabled": False,
            "createdAt": SERVER_TIMESTAMP,
            "updatedAt": SERVER_TIMESTAMP,
            "createdBy": identity.uid,
        }
        self.store.batch_write(
            [
                WriteOp.set(USERS_COLLECTION, identity.uid, data, merge=False),
                WriteOp.set(
                    ROLES_COLLECTION,
                    identity.uid,
                    {"role": Role.VIEWER.value, "disabled": False},
                ),
            ]
        )
        logger.info("Created profile on first sign-in", extra={"uid": identity.uid})
        return self.get(identity.uid) or UserProfile(
            uid=identity.uid, email=identity.email, display_name=identity.display_name
        )

    def list(self, include_deleted: bool = False) -> List[UserProfile]:
        """Profiles newest first; soft-deleted ones only on request."""
        profiles = [
            UserProfile.from_document(document.id, document.data)
            for document in self.store.query(USERS_COLLECTION, "createdAt", descending=True)
        ]
        if include_deleted:
            return profiles
        return [profile for profile in profiles if not profile.is_deleted]

    def upsert(
        self, uid: str, email: str, display_name: str, role: Role, created_by: str
    ) -> None:
        """Merge the provisioning fields into the profile and mirror the role."""
        self.store.batch_write(
            [
                WriteOp.set(
                    USERS_COLLECTION,
                    uid,
                    {
                        "email": email,
                        "displayName": display_name,
                        "role": role.value,
                        "disabled": False,
                        "createdAt": SERVER_TIMESTAMP,
                        "createdBy": created_by,
                    },
                ),
                WriteOp.set(ROLES_COLLECTION, uid, {"role": role.value, "disabled": False}),
            ]
        )

    def apply_changes(
        self,
        uid: str,
        role: Optional[Role] = None,
        disabled: Optional[bool] = None,
        display_name: Optional[str] = None,
    ) -> None:
        """Write an administrative change to the profile and the mirror atomically."""
        profile_fields: Dict[str, Any] = {"updatedAt": SERVER_TIMESTAMP}
        mirror_fields: Dict[str, Any] = {}
        if role is not None:
            profile_fields["role"] = mirror_fields["role"] = role.value
        if disabled is not None:
            profile_fields["disabled"] = mirror_fields["disabled"] = disabled
        if display_name is not None:
            profile_fields["displayName"] = display_name

        ops = [WriteOp.set(USERS_COLLECTION, uid, profile_fields)]
        if mirror_fields:
            ops.append(WriteOp.set(ROLES_COLLECTION, uid, mirror_fields))
        self.store.batch_write(ops)

    def update_display_name(self, uid: str, display_name: str) -> None:
        self.store.update(
            USERS_COLLECTION, uid, {"displayName": display_name, "updatedAt": SERVER_TIMESTAMP}
        )

    def soft_delete(self, uid: str) -> None:
        """Mark the profile deleted; the identity account is left alone."""
        self.store.batch_write(
            [
                WriteOp.update(
                    USERS_COLLECTION,
                    uid,
                    {"deletedAt": SERVER_TIMESTAMP, "updatedAt": SERVER_TIMESTAMP},
                ),
                WriteOp.set(ROLES_COLLECTION, uid, {"deleted": True}),
            ]
        )

    def delete(self, uid: str) -> None:
        self.store.batch_write(
            [WriteOp.delete(USERS_COLLECTION, uid), WriteOp.delete(ROLES_COLLECTION, uid)]
        )
