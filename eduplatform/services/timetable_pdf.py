import io
from typing import List

from fpdf import FPDF

from eduplatform.models.timetable import TimetableEntry

DAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

def clean_text(text: str) -> str:
    """Clean text to be compatible with FPDF's default latin-1 fonts."""
    if not text:
        return ""
    text = str(text).replace('\r', '')
    text = text.replace('–', '-').replace('—', '-').replace('’', "'").replace('‘', "'")
    return text.encode('latin-1', 'replace').decode('latin-1')

def _cell_text(entries: List[TimetableEntry]) -> str:
    lines = []
    for entry in entries:
        label = entry.subject.name if entry.subject else "Class"
        if entry.room_number:
            label = f"{label} ({entry.room_number})"
        lines.append(label)
    return " / ".join(lines)

def build_timetable_pdf(title: str, entries: List[TimetableEntry]) -> io.BytesIO:
    """Weekly grid: one row per start time, one column per day."""
    pdf = FPDF(orientation="L")
    pdf.add_page()

    pdf.set_font("Helvetica", 'B', 16)
    pdf.cell(0, 10, clean_text(title), new_x="LMARGIN", new_y="NEXT", align='C')
    pdf.ln(4)

    time_col = 28
    day_col = (pdf.w - pdf.l_margin - pdf.r_margin - time_col) / len(DAYS)

    pdf.set_font("Helvetica", 'B', 10)
    pdf.cell(time_col, 8, "Time", border=1, align='C')
    for day in DAYS:
        pdf.cell(day_col, 8, day, border=1, align='C')
    pdf.ln()

    slots = sorted({(e.start_time, e.end_time) for e in entries})
    pdf.set_font("Helvetica", '', 9)
    for start, end in slots:
        pdf.cell(time_col, 10, f"{start[:5]}-{end[:5]}", border=1, align='C')
        for day in range(len(DAYS)):
            cell = [e for e in entries if e.day_of_week == day and e.start_time == start and e.end_time == end]
            pdf.cell(day_col, 10, clean_text(_cell_text(cell)), border=1, align='C')
        pdf.ln()

    return io.BytesIO(bytes(pdf.output()))
