"""Downloadable Excel template for attendee uploads."""

import io

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

TEMPLATE_FILENAME = "attendee-upload-template.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# (header, column width)
TEMPLATE_COLUMNS = [
    ("name", 25),
    ("email", 32),
    ("phone", 16),
    ("Attending Adults", 20),
    ("Adult Veg Food", 18),
    ("Adult Non-Veg Food", 20),
    ("Kids Food", 12),
]

SAMPLE_ROWS = [
    ["Rajesh Kumar", "rajesh.kumar@example.com", "904-555-0101", 2, 2, 0, 1],
    ["Priya Patel", "priya.patel@example.com", "904-555-0102", 2, 1, 1, 2],
    ["Arun Selvam", "arun.selvam@example.com", "904-555-0103", 3, 0, 3, 0],
    ["Kavitha Rajan", "kavitha.rajan@example.com", "904-555-0104", 3, 2, 1, 1],
]

INSTRUCTIONS = [
    ["Attendee Upload Template Instructions"],
    [],
    ["REQUIRED COLUMNS"],
    ["Column", "Description", "Example"],
    ["name", "Full name of attendee", "Rajesh Kumar"],
    ["email", "Email address (one attendee per email within an event)", "rajesh@example.com"],
    [],
    ["COUNT COLUMNS (enter 0 if not applicable)"],
    ["Column", "Description", "Example"],
    ["Attending Adults", "Number of adults attending, 1 if left empty", "3"],
    ["Adult Veg Food", "Number of vegetarian adult meals", "2"],
    ["Adult Non-Veg Food", "Number of non-vegetarian adult meals", "1"],
    ["Kids Food", "Number of kids meals", "1"],
    [],
    ["OPTIONAL COLUMNS"],
    ["Column", "Description", "Example"],
    ["phone", "Phone number", "904-555-0101"],
    [],
    ["NOTES"],
    ["- Delete the sample rows before uploading your real data"],
    ["- Keep the header row exactly as-is"],
    ["- Uploading the same email again leaves the existing attendee unchanged"],
    ["- Accepted file formats: .xlsx, .csv (UTF-8)"],
]
SECTION_ROWS = (3, 8, 15, 19)

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="302B63")


def build_template_xlsx() -> bytes:
    """Template sheet with sample rows plus an instructions sheet."""
    workbook = Workbook()

    sheet = workbook.active
    sheet.title = "Attendees"
    sheet.append([header for header, _ in TEMPLATE_COLUMNS])
    for row in SAMPLE_ROWS:
        sheet.append(row)
    for cell, (_, width) in zip(sheet[1], TEMPLATE_COLUMNS):
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        sheet.column_dimensions[cell.column_letter].width = width

    instructions = workbook.create_sheet("Instructions")
    for row in INSTRUCTIONS:
        instructions.append(row)
    instructions["A1"].font = Font(bold=True, size=14, color="302B63")
    for row_number in SECTION_ROWS:
        instructions.cell(row=row_number, column=1).font = Font(bold=True, color="E05A00")
    for column, width in zip("ABC", (30, 55, 25)):
        instructions.column_dimensions[column].width = width

    output = io.BytesIO()
    workbook.save(output)
    return output.getvalue()
