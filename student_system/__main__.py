"""Run the API with ``python -m student_system``."""

import os

import uvicorn

if __name__ == "__main__":
	uvicorn.run(
		"student_system.main:app",
		host=os.getenv("HOST", "0.0.0.0"),
		port=int(os.getenv("PORT", "8000")),
	)
