from fastapi import APIRouter

from eservice.api.v1.endpoints import (
    auth,
    otp,
    hahusms,
    offices,
    services,
    staff,
    requests,
    appointments,
    feedback,
    reports,
    gallery,
    sections,
    languages,
    uploads,
    roles,
    users,
    overview,
    guest,
)

api_router = APIRouter()

# Authentication & phone verification
api_router.include_router(auth.router)
api_router.include_router(otp.router)
api_router.include_router(hahusms.router)

# Dashboards and reports share the /staff and /manager prefixes, so they
# go before the /staff/{staff_id} routes
api_router.include_router(overview.router)
api_router.include_router(reports.staff_router)
api_router.include_router(reports.manager_router)
api_router.include_router(reports.router)

# Offices, services, people
api_router.include_router(offices.router)
api_router.include_router(services.router)
api_router.include_router(staff.router)
api_router.include_router(roles.router)
api_router.include_router(roles.permission_router)
api_router.include_router(users.router)
api_router.include_router(users.admin_router)

# Request workflow
api_router.include_router(requests.router)
api_router.include_router(appointments.router)
api_router.include_router(feedback.router)

# Public content
api_router.include_router(gallery.router)
api_router.include_router(sections.about_router)
api_router.include_router(sections.administration_router)
api_router.include_router(guest.router)

# Localization
api_router.include_router(languages.router)
api_router.include_router(languages.translations_router)

# Files
api_router.include_router(uploads.router)
api_router.include_router(uploads.filedata_router)
