from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response

from ..deps import get_library
from ..schemas import RenameRequest, RenameResponse
from ..services.errors import (
    ConfinementError,
    NotFoundError,
    StorageError,
    UnsatisfiableRangeError,
    ValidationError,
)
from ..services.library import MediaLibrary

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api', tags=['library'])


@router.get('/tree')
def tree(search: str = Query(default=''), library: MediaLibrary = Depends(get_library)):
    try:
        data = library.tree(search)
    except OSError as exc:
        logger.error('Failed to read media root: %s', exc.strerror)
        raise HTTPException(status_code=500, detail='failed to build tree')
    return JSONResponse(data)


@router.get('/stream')
def stream(request: Request, path: str = Query(default=''), library: MediaLibrary = Depends(get_library)):
    if not path:
        raise HTTPException(status_code=400, detail='path required')
    try:
        return library.stream(path, request.headers.get('range'))
    except ConfinementError:
        raise HTTPException(status_code=400, detail='invalid path')
    except NotFoundError:
        raise HTTPException(status_code=404, detail='file not found')
    except UnsatisfiableRangeError as exc:
        return Response(
            status_code=416,
            headers={'Accept-Ranges': 'bytes', 'Content-Range': f'bytes */{exc.size}'},
        )
    except StorageError as exc:
        logger.error('Cannot serve %s: %s', path, exc.__cause__ or exc)
        raise HTTPException(status_code=500, detail='cannot open file')


@router.post('/rename', response_model=RenameResponse)
def rename(payload: RenameRequest, library: MediaLibrary = Depends(get_library)):
    try:
        new_path = library.rename(payload.path, payload.new_name)
    except ConfinementError:
        raise HTTPException(status_code=400, detail='invalid path')
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except NotFoundError:
        raise HTTPException(status_code=404, detail='file not found')
    except StorageError as exc:
        logger.error('Rename of %s failed: %s', payload.path, exc.__cause__ or exc)
        raise HTTPException(status_code=500, detail='rename failed')
    logger.info('Renamed %s -> %s', payload.path, new_path)
    return RenameResponse(ok=True, new_path=new_path)
