#!/usr/bin/env python3
"""
Startup script for the AI App Builder FastAPI server
"""
import os
import uvicorn

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print("🚀 Starting AI App Builder FastAPI Server")
    print("=" * 50)
    print(f"📍 Server will be available at: http://localhost:{port}")
    print(f"📚 API Documentation: http://localhost:{port}/docs")
    print(f"🔍 Health Check: http://localhost:{port}/api/v1/health")
    print("=" * 50)

    uvicorn.run(
        "AI_App_Builder.main_fastapi:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("RELOAD", "true").lower() == "true",
        log_level="info"
    )
