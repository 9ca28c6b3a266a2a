"""Serverless entry point: the credits API behind the Lambda/Vercel adapter."""

from mangum import Mangum

from ledger.api import app

handler = Mangum(app, api_gateway_base_path="/api")
