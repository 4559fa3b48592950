from fastapi import FastAPI
from pydantic import BaseModel

# Use absolute imports so the module can be run as a script from project root.
from mcp_servers.quote_server.schemas import QuoteText
from mcp_servers.quote_server.tools import lookup_quote

app = FastAPI(title="MCP Quote Server")


class QuoteRequest(BaseModel):
    symbol: str


@app.post("/quote", response_model=QuoteText)
def quote(payload: QuoteRequest):
    return lookup_quote(payload.symbol)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8003)
