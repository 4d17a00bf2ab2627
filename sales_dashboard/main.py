import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from sales_dashboard.logging_config import configure_logging
from sales_dashboard.routers import reports
from sales_dashboard.services.sales_query_service import SalesDataAccessError

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title='Sales Dashboard')

app.include_router(reports.router)


@app.exception_handler(SalesDataAccessError)
async def data_access_error_handler(request: Request, exc: SalesDataAccessError) -> JSONResponse:
    logger.error('Report request %s failed: %s', request.url.path, exc)
    return JSONResponse(status_code=502, content={'detail': str(exc)})


@app.get('/')
def root():
    return RedirectResponse('/reports/summary', status_code=303)


@app.get('/robots.txt', response_class=PlainTextResponse)
def robots_txt() -> str:
    return 'User-agent: *\nDisallow: /\n'
