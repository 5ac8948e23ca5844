"""
Fadetrack Backend: API Routes
=============================

Route Inventory:
    - reviews.py:       createReview, updateReview, deleteReview, publicReviews,
                        myReviews, reviewResponses, barbers
    - roles.py:         userRoleSimple, navigation
    - professionals.py: professionalProfileSimple, professionalDirectory,
                        publicProfile, specialties, enhancedSearch
    - offerings.py:     services, portfolio
    - uploads.py:       uploadImage, /storage/{bucket}/{path}
    - search.py:        aiSearch
    - chatkit.py:       chatkit, chatkit/session, chatkit/usage
    - account.py:       deleteAccount, username, haircuts, deleteHaircut
    - reminders.py:     reminders, checkReminders, sendReminders
    - health.py:        /health, /api/config

Handlers stay thin: parse the request, call one service, shape the
response. Errors are raised as `FadetrackError` subclasses and rendered by
the handlers registered in `fadetrack.main`.
"""
