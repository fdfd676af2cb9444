from flask import Flask, request, jsonify, url_for, send_from_directory, send_file
from dotenv import load_dotenv
import os
import io
import logging
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from llm_client import llm_configured
from pipeline import ReportPipeline
from report_pdf import ReportRenderError
from return_analysis import Holding

# --- Initialization ---
load_dotenv()

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)
# Respect reverse proxy headers (scheme/host) for correct external URLs
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
app.config['PREFERRED_URL_SCHEME'] = 'https'

OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")
os.makedirs(OUTPUT_DIR, exist_ok=True)

# Storage behavior:
# STORE_REPORTS = "disk" (default) -> write to OUTPUT_DIR and serve via /download/<file>
# STORE_REPORTS = "memory" -> render in memory and offer a one-time download via /download-temp/<token>
STORE_REPORTS = os.getenv("STORE_REPORTS", "disk").lower()
# Simple in-memory store for ephemeral downloads
TEMP_REPORTS = {}


def _register_temp_download(data: bytes, filename: str, mimetype: str = "application/pdf") -> str:
    token = os.urandom(16).hex()
    TEMP_REPORTS[token] = (filename, data, mimetype)
    return token


def get_pipeline() -> ReportPipeline:
    # A fresh pipeline per request; nothing mutable is shared between requests
    return ReportPipeline()


def _holdings_from_payload(stocks):
    holdings = []
    for s in stocks:
        if not isinstance(s, dict) or not str(s.get("name") or "").strip():
            return None
        holdings.append(Holding(
            name=str(s["name"]).strip(),
            invested_date=s.get("investedDate") or s.get("date"),
        ))
    return holdings


# --- Flask Routes ---

@app.route('/health', methods=['GET'])
@app.route('/healthz', methods=['GET'])
def healthz():
    return jsonify({"status": "ok", "llm_configured": llm_configured()}), 200


@app.route("/report/generate", methods=["POST"])
def report_generate():
    data = request.get_json(silent=True) or {}
    raw_report = data.get("report")
    if not isinstance(raw_report, str) or not raw_report.strip():
        return jsonify({"error": "report text required"}), 400

    pipeline = get_pipeline()
    result = pipeline.process(raw_report)
    if not result.structured:
        logger.warning("No report sections recognized; returning raw text")

    pdf_filename = f"InvestmentReport_{os.urandom(8).hex()}.pdf"
    try:
        if STORE_REPORTS == "memory":
            buf = io.BytesIO()
            pipeline.render(result, buf)
            token = _register_temp_download(buf.getvalue(), pdf_filename)
            endpoint, values = 'download_temp', {'token': token}
        else:
            pipeline.render(result, os.path.join(OUTPUT_DIR, pdf_filename))
            endpoint, values = 'download_file', {'filename': pdf_filename}
    except ReportRenderError as e:
        logger.exception("Report PDF generation failed")
        return jsonify({"error": "Failed to generate report PDF.", "message": str(e)}), 500

    payload = result.to_dict()
    # Relative path for the dashboard's download links, absolute URL for API clients
    payload["pdfPath"] = url_for(endpoint, **values).lstrip("/")
    payload["pdf_url"] = url_for(endpoint, _external=True, **values)
    return jsonify(payload), 200


@app.route("/analyze-returns", methods=["POST"])
def analyze_returns():
    data = request.get_json(silent=True) or {}
    stocks = data.get("stocks")
    if not isinstance(stocks, list) or not stocks:
        return jsonify({"error": "Invalid or missing stock data."}), 400
    holdings = _holdings_from_payload(stocks)
    if holdings is None:
        return jsonify({"error": "Every stock needs a name."}), 400

    try:
        records = get_pipeline().analyze_returns(holdings)
    except Exception:
        logger.exception("Error in analyze-returns")
        return jsonify({"error": "Failed to calculate CAGR."}), 500
    return jsonify({"returns": [r.to_dict() for r in records]}), 200


@app.route('/download/<filename>')
def download_file(filename):
    return send_from_directory(OUTPUT_DIR, filename, as_attachment=True)


@app.route('/download-temp/<token>')
def download_temp(token):
    item = TEMP_REPORTS.pop(token, None)
    if not item:
        return jsonify({"error": "not found"}), 404
    filename, data, mimetype = item
    return send_file(io.BytesIO(data), mimetype=mimetype, as_attachment=True, download_name=filename)


# --- Main Execution ---
if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=False)
