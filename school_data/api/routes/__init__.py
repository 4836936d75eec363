"""
API route modules.

- Teachers: teacher/student records driven through the unit of work

Routers are included from school_data.api.main (under the /api/v1 prefix).
"""
