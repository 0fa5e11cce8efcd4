"""
Applications Module

Server-side state of the admission wizard for one browser session:

1. Session state (user type, current step, application and login data)
   restored on every request and written through to the dual store
2. Step navigation rules for the sidebar
3. Step submission: validation, progress sync with the admissions
   backend and advancing the wizard
4. PDF export of the application form

API Endpoints:
- GET /session - Current state, sidebar and session info
- PATCH /session/application - Shallow merge into application data
- PATCH /session/application/{section} - Field merge into one section
- PUT /session/user-type, PUT /session/step - Setters
- POST /session/reset, POST /session/new-application
- GET/PUT /session/progress/{step}, POST /session/progress/{step}/flush
- POST /session/steps/{step}/submit
- POST /session/documents/{kind}
- GET /session/application.pdf
"""
