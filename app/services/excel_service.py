"""
Excel processing service for guest list import/export
"""

import io
import numbers
import zipfile
from typing import Any, Dict, List, Tuple
import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.orm import Session

from app.core.errors import QuotaExceeded, ValidationError
from app.services.access_control import resolve_role
from app.services.event_lock import event_transaction
from app.services.guest_roster import GuestRoster

class ExcelService:
    """Service for handling Excel operations"""

    REQUIRED_COLUMNS = ['name', 'phone', 'accompanying guests']

    @staticmethod
    def create_template() -> bytes:
        """Create Excel template with required columns"""
        df = pd.DataFrame(columns=['Name', 'Phone', 'Accompanying Guests'])

        # Add sample data for guidance
        sample_data = [
            ['Sample Guest 1', '+966501234567', 1],
            ['Sample Guest 2', '+971501234567', 3],
        ]

        for row in sample_data:
            df.loc[len(df)] = row

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Guest List')

        return buffer.getvalue()

    @staticmethod
    def _column_mapping(df: pd.DataFrame) -> Dict[str, str]:
        mapping = {}
        for col in df.columns:
            col_lower = str(col).lower().strip()
            if 'name' in col_lower:
                mapping['name'] = col
            elif 'phone' in col_lower or 'mobile' in col_lower:
                mapping['phone'] = col
            elif 'accompanying' in col_lower or 'count' in col_lower:
                mapping['accompanying guests'] = col
        return mapping

    @staticmethod
    def validate_excel_structure(df: pd.DataFrame) -> Tuple[bool, List[str]]:
        """Validate Excel file structure"""
        errors = []
        mapping = ExcelService._column_mapping(df)

        missing_columns = [col for col in ExcelService.REQUIRED_COLUMNS if col not in mapping]
        if missing_columns:
            errors.append(f"Missing required columns: {', '.join(missing_columns)}")

        return len(errors) == 0, errors

    @staticmethod
    def _cell_to_count(value: Any) -> Any:
        """Excel hands integers back as floats; keep anything else for validation to reject"""
        if isinstance(value, numbers.Integral) and not isinstance(value, bool):
            return int(value)
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return value

    @staticmethod
    def _cell_to_phone(value: Any) -> str:
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()

    @staticmethod
    def import_guests(
        db: Session,
        actor_id: str,
        event_id: int,
        file_content: bytes,
    ) -> Dict[str, Any]:
        """Add every row of an uploaded guest sheet under the usual roster rules.

        Rows that fail validation or quota are reported and skipped; the rest
        are committed together.
        """
        try:
            df = pd.read_excel(io.BytesIO(file_content))
        except (ValueError, OSError, KeyError, zipfile.BadZipFile, InvalidFileException) as exc:
            raise ValidationError(f"Could not read the Excel file: {exc}") from exc

        valid_structure, structure_errors = ExcelService.validate_excel_structure(df)
        if not valid_structure:
            raise ValidationError("Excel file validation failed", details=structure_errors)

        mapping = ExcelService._column_mapping(df)
        imported = []
        errors = []

        with event_transaction(db, event_id) as event:
            role = resolve_role(actor_id, event)
            for index, row in df.iterrows():
                raw_name = row[mapping['name']]
                # Skip empty rows
                if pd.isna(raw_name) or str(raw_name).strip() == '':
                    continue

                row_number = int(index) + 2  # header is row 1
                try:
                    guest = GuestRoster.add_guest_to_event(
                        db,
                        role,
                        event,
                        name=str(raw_name),
                        phone=ExcelService._cell_to_phone(row[mapping['phone']]),
                        accompanying_count=ExcelService._cell_to_count(row[mapping['accompanying guests']]),
                    )
                    imported.append(guest)
                except (ValidationError, QuotaExceeded) as exc:
                    errors.append({"row": row_number, "name": str(raw_name), "error": exc.message})

        return {
            "imported_count": len(imported),
            "guest_ids": [g.id for g in imported],
            "errors": errors,
        }

    @staticmethod
    def export_guests(db: Session, actor_id: str, event_id: int) -> bytes:
        """Export the guests visible to the actor, with dispatch state"""
        _, guests = GuestRoster.list_guests(db, actor_id, event_id)

        data = []
        for guest in guests:
            data.append({
                'Name': guest.name,
                'Phone': guest.phone,
                'Accompanying Guests': guest.accompanying_count,
                'Added By': guest.added_by_role.value,
                'Invitation Sent': 'Yes' if guest.whatsapp_message_sent else 'No',
                'Sent At': guest.whatsapp_message_sent_at.isoformat() if guest.whatsapp_message_sent_at else '',
            })

        df = pd.DataFrame(data, columns=[
            'Name', 'Phone', 'Accompanying Guests', 'Added By', 'Invitation Sent', 'Sent At'
        ])

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            df.to_excel(writer, index=False, sheet_name='Guest List')

        return buffer.getvalue()
