"""
Export orders to XLSX format.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from icebot.core.orders.models import Order

logger = logging.getLogger(__name__)


class OrderExporter:
    """Export orders to XLSX format."""

    # Styles
    HEADER_FONT = Font(bold=True, size=14)
    SUBHEADER_FONT = Font(bold=True, size=11)

    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT_WHITE = Font(bold=True, size=11, color="FFFFFF")

    ALT_ROW_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")

    THIN_BORDER = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
    LEFT_ALIGN = Alignment(horizontal='left', vertical='center')
    WRAP_ALIGN = Alignment(horizontal='left', vertical='top', wrap_text=True)

    COLUMNS = [
        ("№", 7),
        ("Created (UTC)", 17),
        ("Status", 20),
        ("Customer ID", 14),
        ("Name", 20),
        ("Phone", 16),
        ("Items", 35),
        ("Address", 40),
        ("Coordinates", 22),
        ("Delivery link", 30),
    ]

    def export(
        self,
        orders: Iterable[Order],
        output_dir: Optional[Path] = None,
        title: str = "Orders",
    ) -> Path:
        """
        Export orders to XLSX file, one row per order.

        Args:
            orders: Orders to export, in display order
            output_dir: Directory for output file (default: data/exports/)
            title: Sheet heading

        Returns:
            Path to created XLSX file
        """
        if output_dir is None:
            output_dir = Path("data/exports")

        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = output_dir / f"orders_{timestamp}.xlsx"

        wb = Workbook()
        ws = wb.active
        ws.title = title[:31]

        for col, (_, width) in enumerate(self.COLUMNS, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

        last_column = get_column_letter(len(self.COLUMNS))
        row = 1

        # === HEADER ===
        ws.merge_cells(f'A{row}:{last_column}{row}')
        cell = ws.cell(row=row, column=1, value=title.upper())
        cell.font = self.HEADER_FONT
        cell.alignment = self.CENTER_ALIGN
        row += 1

        ws.merge_cells(f'A{row}:{last_column}{row}')
        cell = ws.cell(row=row, column=1, value=f"exported {datetime.now().strftime('%d.%m.%Y %H:%M')}")
        cell.alignment = self.CENTER_ALIGN
        row += 2

        # === TABLE ===
        for col, (header, _) in enumerate(self.COLUMNS, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.HEADER_FONT_WHITE
            cell.fill = self.HEADER_FILL
            cell.border = self.THIN_BORDER
            cell.alignment = self.CENTER_ALIGN
        row += 1

        count = 0
        for i, order in enumerate(orders, 1):
            items = "\n".join(
                f"{item.category} — {item.amount_label}" for item in order.items
            )
            values = [
                order.id,
                order.created_at.strftime('%d.%m.%Y %H:%M'),
                f"{int(order.stage)} {order.status_label}",
                order.customer_id,
                order.name or "",
                order.phone or "",
                items,
                order.address or "",
                str(order.coordinates) if order.coordinates else "",
                order.delivery_link or "",
            ]

            for col, value in enumerate(values, 1):
                cell = ws.cell(row=row, column=col, value=value)
                cell.border = self.THIN_BORDER
                if col == 1:
                    cell.alignment = self.CENTER_ALIGN
                elif col in (7, 8):
                    cell.alignment = self.WRAP_ALIGN
                else:
                    cell.alignment = self.LEFT_ALIGN

                # Alternate row coloring
                if i % 2 == 0:
                    cell.fill = self.ALT_ROW_FILL
            row += 1
            count += 1

        # Total row
        row += 1
        cell = ws.cell(row=row, column=1, value=f"TOTAL: {count}")
        cell.font = self.SUBHEADER_FONT

        ws.freeze_panes = "A5"

        wb.save(filepath)
        logger.info(f"{count} order(s) exported to {filepath}")

        return filepath


# Singleton instance
order_exporter = OrderExporter()
