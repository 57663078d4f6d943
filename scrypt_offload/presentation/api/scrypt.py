"""Hash and compare API endpoints."""

from fastapi import APIRouter, Depends, status

from scrypt_offload.application.dtos.scrypt_dto import (
    CompareRequestDTO,
    CompareResponseDTO,
    HashRequestDTO,
    HashResponseDTO,
)
from scrypt_offload.application.services.derivation_service import DerivationService
from scrypt_offload.domain.services.hash_record_codec import HashRecordCodec
from scrypt_offload.infrastructure.workers.work_dispatcher import WorkDispatcher
from scrypt_offload.presentation.dependencies import get_derivation_service, get_work_dispatcher
from scrypt_offload.presentation.error_schemas import ErrorResponse


router = APIRouter(tags=["scrypt"])

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Malformed request"},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse, "description": "No workers available"},
}


@router.post(
    "/hash",
    response_model=HashResponseDTO,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses=_ERROR_RESPONSES,
    summary="Hash data",
    description="Derive a scrypt key from the data and return the encoded record in base64.",
)
async def hash_data(
    dto: HashRequestDTO,
    service: DerivationService = Depends(get_derivation_service),
    dispatcher: WorkDispatcher = Depends(get_work_dispatcher),
):
    """
    Hash data with the requested scrypt parameters.

    The derivation runs on the worker pool; this coroutine only waits for it.

    Returns:
        ``{"result": "<base64 record>"}``, or ``{"error": "..."}`` with status
        200 when the parameters are out of range or derivation fails
    """
    encoded = await dispatcher.run(service.hash, dto.data, dto.to_params())
    return HashResponseDTO(result=HashRecordCodec.encode_base64(encoded))


@router.post(
    "/compare",
    response_model=CompareResponseDTO,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    responses=_ERROR_RESPONSES,
    summary="Compare data with a hash",
    description="Check whether the data produced the given base64 hash record.",
)
async def compare_data(
    dto: CompareRequestDTO,
    service: DerivationService = Depends(get_derivation_service),
    dispatcher: WorkDispatcher = Depends(get_work_dispatcher),
):
    """
    Compare data with a previously produced hash record (any version).

    Returns:
        ``{"result": true|false}``, or ``{"error": "..."}`` with status 200 when
        the record cannot be decoded or derivation fails
    """
    matches = await dispatcher.run(service.compare, dto.data, dto.hash)
    return CompareResponseDTO(result=matches)
