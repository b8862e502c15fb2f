from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from nativenest.api.exceptions import register_error_handler
from nativenest.api.v1.routes import events, stall_types, stalls, interests
from nativenest.core.middleware.request_id import RequestIdMiddleware
from nativenest.core.middleware.http_ctx import HttpContextMiddleware
from nativenest.core.redis import create_redis, redis_alive


async def lifespan(app: FastAPI):
    r = await create_redis()
    app.state.redis = r
    try:
        yield
    finally:
        await r.aclose()


app = FastAPI(title="NativeNest", lifespan=lifespan)
# last added runs first: the request id must exist before route/ip context is bound
app.add_middleware(HttpContextMiddleware)
app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")
register_error_handler(app)

app.include_router(events.router)
app.include_router(stall_types.router)
app.include_router(stalls.router)
app.include_router(interests.router)


@app.get("/health", include_in_schema=False)
async def health(request: Request):
    redis_ok = await redis_alive(getattr(request.app.state, "redis", None))
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ok", "redis": "ok" if redis_ok else "unavailable"},
    )
