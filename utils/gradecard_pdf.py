# utils/gradecard_pdf.py
import io
from datetime import datetime
from xml.sax.saxutils import escape
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

EXAM_COLUMNS = ['internal1', 'internal2', 'internal3', 'assignment', 'project', 'practical', 'final']


def build_gradecard_pdf(student, semester, grade_card, semester_gpa, cgpa):
    """Render a semester grade card; returns the PDF as bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=30, leftMargin=30, topMargin=50, bottomMargin=40)
    styles = getSampleStyleSheet()
    elements = []

    elements.append(Paragraph("Semester Grade Card", styles['Heading1']))
    elements.append(Spacer(1, 12))
    # Paragraph text is markup; names and codes come from user input
    elements.append(Paragraph(f"Student Name: {escape(student.name)}", styles['Normal']))
    elements.append(Paragraph(f"Roll Number: {escape(student.roll_number)}", styles['Normal']))
    elements.append(Paragraph(f"Department: {escape(student.department)}", styles['Normal']))
    elements.append(Paragraph(f"Semester: {semester}", styles['Normal']))
    elements.append(Paragraph(f"Date: {datetime.now().strftime('%B %d, %Y')}", styles['Normal']))
    elements.append(Spacer(1, 24))

    data = [["Code", "Course", "Credits", "Attendance %", "Grade", "Points"]]
    for entry in grade_card:
        course = entry['course']
        enrollment = entry['enrollment']
        data.append([
            course['courseCode'],
            course['title'],
            str(course['credits']),
            f"{enrollment['attendancePercentage']:.2f}",
            enrollment['grade'] or '-',
            f"{enrollment['gradePoints']:g}",
        ])

    table = Table(data, colWidths=[60, 200, 50, 80, 50, 50])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#004085")),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('ALIGN', (2, 0), (-1, -1), 'CENTER'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.whitesmoke, colors.lightgrey]),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
    ]))
    elements.append(table)
    elements.append(Spacer(1, 18))

    # Per-exam percentages, one row per course
    marks_rows = [["Code"] + EXAM_COLUMNS]
    for entry in grade_card:
        by_type = {m['examType']: m for m in entry['marks']}
        marks_rows.append([entry['course']['courseCode']] + [
            f"{by_type[t]['marksObtained']:g}/{by_type[t]['maxMarks']:g}" if t in by_type else '-'
            for t in EXAM_COLUMNS
        ])
    if len(marks_rows) > 1:
        marks_table = Table(marks_rows, repeatRows=1)
        marks_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.lightblue),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('GRID', (0, 0), (-1, -1), 0.25, colors.grey),
        ]))
        elements.append(marks_table)
        elements.append(Spacer(1, 18))

    elements.append(Paragraph(f"Semester GPA: {semester_gpa:.2f}", styles['Heading3']))
    elements.append(Paragraph(f"CGPA: {cgpa:.2f}", styles['Heading3']))

    doc.build(elements)
    buffer.seek(0)
    return buffer.read()
