"""Call analytics aggregation tool - Entry point."""

from dotenv import load_dotenv

from call_analytics.cli import app

# Load environment variables from .env file
load_dotenv()

if __name__ == "__main__":
    app()
