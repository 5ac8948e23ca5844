"""
Fadetrack Backend: Services Layer
=================================

Business rules between the routes and the database. Services take an
`AsyncSession`, flush but never commit (the request dependency commits),
and raise `FadetrackError` subclasses.

Service Inventory:
    - ReviewService:        review CRUD, atomic rating aggregates, replies
    - RoleService:          customer/professional roles and navigation tabs
    - ProfessionalService:  profiles, directory, enhanced search
    - OfferingsService:     a profile's service menu and portfolio
    - StorageService:       image validation and the local object store
    - UsageService:         per-identity daily/monthly AI quota
    - AISearchService:      picks a SearchAgent, applies quota and breaker
        - WorkflowSearchAgent: hosted workflow run + poll (httpx, tenacity)
        - GeminiChatAgent:     single Gemini chat completion
        - ChatKitClient:       ChatKit session secrets
    - AccountService:       usernames, haircut log, account deletion
    - ReminderService:      rebooking reminders emailed through Resend
"""
