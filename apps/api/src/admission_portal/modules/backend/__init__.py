"""
Admissions Backend Module

Gateway to the remote services the portal depends on:
- The admissions backend (auth, progress sync, submission, catalog, payments)
- Cloudinary for document uploads

API Endpoints:
- GET /courses - Active courses with their programs
- GET /courses/{course_slug}/programs - Programs of one course
"""
