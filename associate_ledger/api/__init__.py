"""
Associate Ledger API Application Factory
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .associates import router as associates_router
from .loans import router as loans_router
from .installments import router as installments_router
from .reports import router as reports_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Associate Loan Ledger API",
        description="Loans between the company and its associates, repayment schedules and balances",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(associates_router, prefix="/associates", tags=["Associates"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(installments_router, prefix="/installments", tags=["Installments"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "associate_ledger_api",
            "version": __version__
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the API with uvicorn"""
    import uvicorn
    uvicorn.run(create_app(), host=host, port=port, log_level="debug" if debug else "info")
