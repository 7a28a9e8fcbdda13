"""Campus Attendance package.

Organized by feature modules (academics, attendance, reports, users) with a thin
Flask JSON controller layer over service/repository layers.
"""
