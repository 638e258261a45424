from fastapi import APIRouter, Depends
from sqlmodel import Session

from carebridge.context import CurrentContext, get_current_context
from carebridge.database import get_session
from carebridge.responses.institution import build_institution_response, build_location_response
from carebridge.services.institution_service import InstitutionService

router = APIRouter()


@router.get("/institution/current")
def get_current_institution(context: CurrentContext = Depends(get_current_context)):
    return {"institution": build_institution_response(context.institution)}


@router.get("/institution/account-sources")
def get_account_sources(
    context: CurrentContext = Depends(get_current_context),
    session: Session = Depends(get_session),
):
    return {"account_sources": InstitutionService(session).find_account_sources(context.institution)}


@router.get("/institution/locations")
def get_locations(
    context: CurrentContext = Depends(get_current_context),
    session: Session = Depends(get_session),
):
    locations = InstitutionService(session).find_locations(context.institution_id)
    return {"locations": [build_location_response(location) for location in locations]}
