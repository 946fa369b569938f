from fastapi import APIRouter

from schoolops.api.report_exports import report_exports_router
from schoolops.api.requisition_settings import settings_router
from schoolops.api.requisitions import requisitions_router
from schoolops.api.tenants import tenants_router

api_router = APIRouter()
api_router.include_router(requisitions_router)
api_router.include_router(settings_router)
api_router.include_router(report_exports_router)
api_router.include_router(tenants_router)
