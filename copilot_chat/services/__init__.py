"""
Services: startup wiring, OCR engines and the message relay.

Services hold process-wide state and orchestration; data access is delegated
to repositories.
"""
