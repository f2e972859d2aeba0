"""
FaceCloud Application Package

This package contains the clinic-management core:
- auth: Supabase authentication, sessions and magic-link recovery
- db: Supabase database client
- workflow: step sequencing, validation rules and form drafts
- wizards: clinic, staff and room creation wizards
- metrics: dashboard metrics and their client-side cache
- services: clinic, staff, room, equipment and account operations
- state: injectable UI state
- api: public JSON API
"""
