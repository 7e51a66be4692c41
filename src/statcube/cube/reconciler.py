"""Revision reconciler.

Folds the fact table uploads of a revision chain into one logical fact
table. Uploads are applied strictly in upload time order, whichever
revision they belong to.

Actions:
    replace_all: clear the fact table, then load the upload
    add: load the upload
    revise: overwrite the data value of existing rows whose staged note
        codes carry 'r', appending 'r' to their note codes
    add_revise: revise, then insert every staged row without 'r'

Revise and add_revise need both a data value and a note codes column.
Without them they are skipped with a warning.
"""

from typing import Dict, List

from statcube.common.exceptions import StatCubeError, UploadLoadError, stage_error
from statcube.constants.cube import (
    FACT_TABLE_NAME,
    NOTE_CODE_SEPARATOR,
    REVISED_NOTE_CODE,
    STAGING_TABLE_NAME,
    UPDATE_TABLE_NAME,
    RevisionAction,
)
from statcube.cube.context import CubeBuildContext
from statcube.cube.loader import copy_into, drop_table, load_file
from statcube.logging import get_logger
from statcube.operations import CreateTable, Delete, Update
from statcube.types import Dataset, FactTableUpload, Revision

logger = get_logger(__name__)


def select_uploads(dataset: Dataset, target: Revision) -> List[FactTableUpload]:
    """Uploads that make up ``target``, in upload time order.

    A numbered revision takes every numbered revision up to its own index.
    A draft takes every numbered revision created before it plus its own
    uploads.

    Raises:
        UploadLoadError: With ``reason='no_uploads'`` when nothing applies
    """
    if not target.is_draft:
        revisions = [
            rev for rev in dataset.revisions
            if 0 < rev.revision_index <= target.revision_index
        ]
    else:
        revisions = [
            rev for rev in dataset.revisions
            if not rev.is_draft and rev.created_at < target.created_at
        ]
        revisions.append(target)

    uploads = [upload for rev in revisions for upload in rev.uploads]
    if not uploads:
        raise stage_error(
            UploadLoadError,
            f"Revision {target.id} of dataset {dataset.id} has no fact table uploads",
            stage="reconcile",
            reason="no_uploads",
            dataset_id=dataset.id,
            revision_id=target.id,
        )
    return sorted(uploads, key=lambda upload: upload.uploaded_at)


class RevisionReconciler:
    """Applies uploads to the fact table of one build."""

    def __init__(self, ctx: CubeBuildContext):
        self.ctx = ctx
        self.fact_schema = ctx.fact_schema
        self._key_columns = [col.name for col in self.fact_schema.key_columns]
        self._types = [col.physical_type for col in self.fact_schema.columns]

    def reconcile(self, uploads: List[FactTableUpload]) -> int:
        """Apply ``uploads`` in order and return how many were applied."""
        applied = 0
        for upload in uploads:
            if self.apply(upload):
                applied += 1
        logger.info(
            "Fact table reconciled",
            extra={
                **self.ctx.telemetry,
                "uploads.total": str(len(uploads)),
                "uploads.applied": str(applied),
            },
        )
        return applied

    def apply(self, upload: FactTableUpload) -> bool:
        """Apply one upload; returns False when its action was skipped."""
        action = RevisionAction(upload.action)
        handlers = {
            RevisionAction.REPLACE_ALL: self._replace_all,
            RevisionAction.ADD: self._add,
            RevisionAction.REVISE: self._revise,
            RevisionAction.ADD_REVISE: self._add_revise,
        }

        if action in (RevisionAction.REVISE, RevisionAction.ADD_REVISE) and not self.fact_schema.supports_revisions:
            logger.warning(
                "Upload action needs data value and note codes columns; skipping upload",
                extra={**self.ctx.telemetry, "upload.id": upload.id, "upload.action": action.value},
            )
            return False

        logger.debug(
            "Applying upload",
            extra={**self.ctx.telemetry, "upload.id": upload.id, "upload.action": action.value},
        )
        handlers[action](upload)
        drop_table(self.ctx, STAGING_TABLE_NAME)
        return True

    def _mapping(self, upload: FactTableUpload) -> Dict[str, str]:
        """Fact table column -> column of the uploaded file."""
        return {name: upload.source_column(name) for name in self.fact_schema.column_names}

    def _stage(self, upload: FactTableUpload) -> None:
        load_file(self.ctx, upload, STAGING_TABLE_NAME, stage="reconcile")

    def _load_into_fact_table(self, upload: FactTableUpload) -> None:
        self._stage(upload)
        mapping = self._mapping(upload)
        copy_into(
            self.ctx,
            STAGING_TABLE_NAME,
            FACT_TABLE_NAME,
            list(mapping.keys()),
            list(mapping.values()),
            stage="reconcile",
            upload_id=upload.id,
            target_types=self._types,
        )

    def _replace_all(self, upload: FactTableUpload) -> None:
        self.ctx.execute(Delete(object_name=FACT_TABLE_NAME, logging_context={"upload_id": upload.id}))
        self._load_into_fact_table(upload)

    def _add(self, upload: FactTableUpload) -> None:
        self._load_into_fact_table(upload)

    def _revise(self, upload: FactTableUpload) -> None:
        self._stage_update_table(upload)
        self._apply_revisions(upload)
        drop_table(self.ctx, UPDATE_TABLE_NAME)

    def _add_revise(self, upload: FactTableUpload) -> None:
        self._stage_update_table(upload)
        self._apply_revisions(upload)
        # Revised rows were applied above; rows already in the fact table are resent unchanged
        where = self._is_revised(UPDATE_TABLE_NAME)
        key_match = self._key_match()
        if key_match:
            where = f"{where} OR EXISTS (SELECT 1 FROM {self.ctx.quote(FACT_TABLE_NAME)} WHERE {key_match})"
        self.ctx.execute(Delete(
            object_name=UPDATE_TABLE_NAME,
            where_clause=where,
            logging_context={"upload_id": upload.id},
        ))
        columns = self.fact_schema.column_names
        copy_into(
            self.ctx,
            UPDATE_TABLE_NAME,
            FACT_TABLE_NAME,
            columns,
            columns,
            stage="reconcile",
            upload_id=upload.id,
        )
        drop_table(self.ctx, UPDATE_TABLE_NAME)

    def _stage_update_table(self, upload: FactTableUpload) -> None:
        """Load the upload and project it onto the fact table's column names."""
        self._stage(upload)
        selects = ", ".join(
            f"CAST({self.ctx.quote(source)} AS {self.fact_schema.get_column(target).physical_type}) AS {self.ctx.quote(target)}"
            for target, source in self._mapping(upload).items()
        )
        try:
            self.ctx.execute(CreateTable(
                object_name=UPDATE_TABLE_NAME,
                select_query=f"SELECT {selects} FROM {self.ctx.quote(STAGING_TABLE_NAME)}",
                recreate=True,
                logging_context={"upload_id": upload.id},
            ))
        except StatCubeError as exc:
            raise stage_error(
                UploadLoadError,
                f"Upload {upload.id} does not match the fact table columns",
                stage="reconcile",
                cause=exc,
                reason="load_failed",
                upload_id=upload.id,
            )

    def _key_match(self) -> str:
        return " AND ".join(
            f"{self.ctx.column(FACT_TABLE_NAME, key)} = {self.ctx.column(UPDATE_TABLE_NAME, key)}"
            for key in self._key_columns
        )

    def _is_revised(self, table: str) -> str:
        """Condition: the note codes of ``table`` contain the revised code."""
        notes = self.ctx.column(table, self.fact_schema.note_codes_column.name)
        return (
            f"list_contains(string_split(replace(lower({notes}), ' ', ''), "
            f"{self.ctx.literal(NOTE_CODE_SEPARATOR)}), {self.ctx.literal(REVISED_NOTE_CODE)})"
        )

    def _apply_revisions(self, upload: FactTableUpload) -> None:
        data_column = self.fact_schema.data_values_column.name
        notes_column = self.fact_schema.note_codes_column.name
        fact_notes = self.ctx.column(FACT_TABLE_NAME, notes_column)
        revised = self.ctx.literal(REVISED_NOTE_CODE)
        separator = self.ctx.literal(NOTE_CODE_SEPARATOR)

        notes_expression = (
            f"CASE WHEN {fact_notes} IS NULL OR {fact_notes} = '' THEN {revised} "
            f"WHEN {self._is_revised(FACT_TABLE_NAME)} THEN {fact_notes} "
            f"ELSE concat({fact_notes}, {separator}, {revised}) END"
        )
        key_match = self._key_match()
        where = f"{key_match} AND {self._is_revised(UPDATE_TABLE_NAME)}" if key_match else self._is_revised(UPDATE_TABLE_NAME)

        try:
            self.ctx.execute(Update(
                object_name=FACT_TABLE_NAME,
                set_columns={
                    data_column: self.ctx.column(UPDATE_TABLE_NAME, data_column),
                    notes_column: notes_expression,
                },
                from_table=UPDATE_TABLE_NAME,
                where_clause=where,
                logging_context={"upload_id": upload.id},
            ))
        except StatCubeError as exc:
            raise stage_error(
                UploadLoadError,
                f"Failed to apply revisions from upload {upload.id}",
                stage="reconcile",
                cause=exc,
                reason="load_failed",
                upload_id=upload.id,
            )
