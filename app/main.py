from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import auth, rooms, reviews, discounts, bookings, payment, admin

# ⭐ Import logging system
from app.core.logging_config import get_logger

logger = get_logger()

app = FastAPI(
    title="Hotel Booking API",
    version="1.0.0",
    description="API for Rooms, Reviews, Bookings, Discounts and MoMo Payments"
)

# ⭐ Request Logging Middleware
@app.middleware("http")
async def log_requests(request, call_next):
    logger.info(f"REQUEST: {request.method} {request.url.path}")

    try:
        response = await call_next(request)
        logger.info(f"RESPONSE: {response.status_code} {request.url.path}")
        return response

    except Exception as e:
        logger.error(f"ERROR: {request.url.path} -> {str(e)}")
        raise e


# ⭐ CORS (important for frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],   # Can restrict later for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------- ROUTERS REGISTER ORDER MATTERS --------
app.include_router(auth.router)
app.include_router(rooms.router)
app.include_router(reviews.router)
app.include_router(discounts.router)
app.include_router(bookings.router)
app.include_router(payment.router)
app.include_router(admin.router)

@app.get("/", tags=["Root"])
def root():
    return {"message": "Backend running successfully"}
