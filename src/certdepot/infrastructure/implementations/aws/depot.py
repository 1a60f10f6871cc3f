"""
AWS DynamoDB implementation of the depot using PynamoDB ORM.

One item per identity holds every artifact kind as a separate attribute,
plus an expiration timestamp used for TTL scans. Writes update a single
attribute and leave the other kinds of the same identity untouched.
"""

from datetime import datetime

from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DoesNotExist, PynamoDBException
from pynamodb.models import Model

from certdepot.core.logging import logger
from certdepot.exceptions import (
    ArtifactExistsError,
    ArtifactNotFoundError,
    DepotValidationError,
    StorageError,
)
from certdepot.infrastructure.repositories.depot import Depot
from certdepot.infrastructure.repositories.tags import ArtifactKind, Tag
from certdepot.infrastructure.repositories.ttl import StoredRecord, TTLRepository
from certdepot.models import DynamoDBOptions

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DepotRecordModel(Model):
    """PynamoDB model for depot records.

    DynamoDB Table Schema:
    - Partition Key: id (string, normalized identity name)
    - Attributes: cert, key, cert_req, cert_revoc_list, ttl

    Note: table_name, region and host are configured dynamically in
    DynamoDBDepot.__init__
    """

    class Meta:
        table_name = None
        region = None
        host = None
        billing_mode = "PAY_PER_REQUEST"

    name = UnicodeAttribute(hash_key=True, attr_name="id")

    certificate = UnicodeAttribute(null=True, attr_name="cert")
    private_key = UnicodeAttribute(null=True, attr_name="key")
    certificate_request = UnicodeAttribute(null=True, attr_name="cert_req")
    revocation_list = UnicodeAttribute(null=True, attr_name="cert_revoc_list")
    ttl = UTCDateTimeAttribute(null=True, attr_name="ttl")


_FIELDS = {
    ArtifactKind.CERTIFICATE: "certificate",
    ArtifactKind.PRIVATE_KEY: "private_key",
    ArtifactKind.CERTIFICATE_SIGNING_REQUEST: "certificate_request",
    ArtifactKind.CERTIFICATE_REVOCATION_LIST: "revocation_list",
}


def _attribute(kind: ArtifactKind) -> UnicodeAttribute:
    return getattr(DepotRecordModel, _FIELDS[kind])


def _is_conditional_failure(error: PynamoDBException) -> bool:
    return error.cause_response_code == CONDITIONAL_CHECK_FAILED


class DynamoDBDepot(Depot, TTLRepository):
    """DynamoDB-backed depot with expiration tracking.

    Deleting an absent artifact (or identity) is a no-op.
    """

    def __init__(self, options: DynamoDBOptions | None = None):
        """Configure the PynamoDB model.

        Args:
            options: Table, region and depot defaults

        Raises:
            DepotValidationError: If the options are invalid
            StorageError: If the table cannot be created
        """
        options = options or DynamoDBOptions()
        options.validate_options()

        DepotRecordModel.Meta.table_name = options.table_name
        DepotRecordModel.Meta.region = options.region
        DepotRecordModel.Meta.host = options.host
        # Drop the cached connection so the new table settings apply
        DepotRecordModel._connection = None

        self.table_name = options.table_name
        self.region_name = options.region
        self.options = options.depot_options

        if options.auto_create_table:
            self.ensure_table()

        logger.info(
            f"Initialized DynamoDBDepot (PynamoDB) with table={self.table_name}, "
            f"region={self.region_name}"
        )

    def ensure_table(self) -> None:
        """Create DynamoDB table if it doesn't exist."""
        try:
            if not DepotRecordModel.exists():
                logger.info(f"Creating DynamoDB table: {self.table_name}")
                DepotRecordModel.create_table(
                    wait=True, billing_mode="PAY_PER_REQUEST"
                )
                logger.info(f"Table {self.table_name} created successfully")
            else:
                logger.debug(f"Table {self.table_name} already exists")
        except PynamoDBException as e:
            raise StorageError(f"creating table {self.table_name}: {e}") from e

    @staticmethod
    def _name(tag: Tag) -> str:
        name = tag.storage_name
        if not name:
            raise DepotValidationError("invalid depot name ''")
        return name

    def _load(self, name: str) -> DepotRecordModel | None:
        try:
            return DepotRecordModel.get(name, consistent_read=True)
        except DoesNotExist:
            return None
        except PynamoDBException as e:
            raise StorageError(f"looking up name '{name}' in the database: {e}") from e

    @staticmethod
    def _value(record: DepotRecordModel, kind: ArtifactKind) -> str | None:
        return getattr(record, _FIELDS[kind])

    def put(self, tag: Tag, data: bytes) -> None:
        """Upsert one artifact attribute of the identity's record."""
        text = self._validate_data(data)
        name = self._name(tag)
        attribute = _attribute(tag.kind)

        try:
            DepotRecordModel(name).update(actions=[attribute.set(text)])
        except PynamoDBException as e:
            raise StorageError(f"adding data for '{name}' to the database: {e}") from e

        logger.debug(
            f"Put {tag.kind.name.lower()} for {name} "
            f"(table={self.table_name}, op=put)"
        )

    def put_exclusive(self, tag: Tag, data: bytes) -> None:
        """Write one artifact attribute only if it is absent or empty."""
        text = self._validate_data(data)
        name = self._name(tag)
        attribute = _attribute(tag.kind)

        try:
            DepotRecordModel(name).update(
                actions=[attribute.set(text)],
                condition=attribute.does_not_exist() | (attribute == ""),
            )
        except PynamoDBException as e:
            if _is_conditional_failure(e):
                raise ArtifactExistsError(
                    f"{tag.kind.name.lower()} '{name}' already exists"
                ) from e
            raise StorageError(f"adding data for '{name}' to the database: {e}") from e

        logger.debug(
            f"Put {tag.kind.name.lower()} for {name} "
            f"(table={self.table_name}, op=put_exclusive)"
        )

    def get(self, tag: Tag) -> bytes:
        """Read one artifact; empty attributes count as missing."""
        name = self._name(tag)
        record = self._load(name)
        if record is None:
            raise ArtifactNotFoundError(f"name '{name}' not found")

        value = self._value(record, tag.kind)
        if not value:
            raise ArtifactNotFoundError(
                f"no {tag.kind.name.lower()} data available for '{name}'"
            )
        return value.encode()

    def check(self, tag: Tag) -> bool:
        try:
            return self.check_with_error(tag)
        except StorageError as e:
            logger.warning(f"Could not check {tag.storage_name}: {e}")
            return False

    def check_with_error(self, tag: Tag) -> bool:
        record = self._load(self._name(tag))
        if record is None:
            return False
        return bool(self._value(record, tag.kind))

    def delete(self, tag: Tag) -> None:
        """Remove one artifact attribute; absent identities are a no-op."""
        name = self._name(tag)
        attribute = _attribute(tag.kind)

        try:
            DepotRecordModel(name).update(
                actions=[attribute.remove()],
                condition=DepotRecordModel.name.exists(),
            )
        except PynamoDBException as e:
            if _is_conditional_failure(e):
                logger.debug(f"Nothing to delete for {name}")
                return
            raise StorageError(
                f"deleting '{name}.{tag.kind.value}' from the database: {e}"
            ) from e

        logger.debug(
            f"Deleted {tag.kind.name.lower()} for {name} "
            f"(table={self.table_name}, op=delete)"
        )

    def put_ttl(self, name: str, expiration: datetime) -> None:
        """Set the expiration of an existing identity."""
        formatted_name = Tag(name, ArtifactKind.CERTIFICATE).storage_name

        try:
            DepotRecordModel(formatted_name).update(
                actions=[DepotRecordModel.ttl.set(expiration)],
                condition=DepotRecordModel.name.exists(),
            )
        except PynamoDBException as e:
            if _is_conditional_failure(e):
                raise ArtifactNotFoundError(
                    f"update did not change TTL for user {name}"
                ) from e
            raise StorageError(f"updating TTL for '{name}' in the database: {e}") from e

    def find_expires_before(self, cutoff: datetime) -> list[StoredRecord]:
        """Find all records that expire at or before the cutoff."""
        try:
            records = [
                self._to_record(model)
                for model in DepotRecordModel.scan(DepotRecordModel.ttl <= cutoff)
            ]
        except PynamoDBException as e:
            raise StorageError(f"finding expired records: {e}") from e

        logger.debug(f"Found {len(records)} records expiring before {cutoff}")
        return records

    def delete_expires_before(self, cutoff: datetime) -> None:
        """Remove all records that expire at or before the cutoff."""
        try:
            with DepotRecordModel.batch_write() as batch:
                for model in DepotRecordModel.scan(DepotRecordModel.ttl <= cutoff):
                    batch.delete(model)
        except PynamoDBException as e:
            raise StorageError(f"removing expired records: {e}") from e

    def find_record(self, name: str) -> StoredRecord:
        """Find the record of an identity by name."""
        formatted_name = Tag(name, ArtifactKind.CERTIFICATE).storage_name
        model = self._load(formatted_name)
        if model is None:
            raise ArtifactNotFoundError(f"record '{name}' not found")
        return self._to_record(model)

    def delete_record(self, name: str) -> None:
        """Remove the whole record of an identity by name."""
        formatted_name = Tag(name, ArtifactKind.CERTIFICATE).storage_name

        try:
            DepotRecordModel(formatted_name).delete(
                condition=DepotRecordModel.name.exists()
            )
        except PynamoDBException as e:
            if _is_conditional_failure(e):
                raise ArtifactNotFoundError(
                    f"could not find record {name} to delete"
                ) from e
            raise StorageError(f"deleting record '{name}': {e}") from e

    @staticmethod
    def _to_record(model: DepotRecordModel) -> StoredRecord:
        return StoredRecord(
            name=model.name,
            cert=model.certificate,
            key=model.private_key,
            cert_req=model.certificate_request,
            cert_revoc_list=model.revocation_list,
            ttl=model.ttl,
        )
