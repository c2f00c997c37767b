# tisasm/app.py
from flask import Flask, request, jsonify
from flask_cors import CORS
import logging

from tisasm.tis_assembler import TisAssembler
from tisasm.tis_disassembler import TisDisassembler
from tisasm.tis_listing import format_listing, parse_listing

#logging.basicConfig(level=logging.DEBUG) # Use DEBUG for development
logger = logging.getLogger(__name__)

app = Flask(__name__)
# Adjust CORS for your frontend origin if different
CORS(app, resources={r"/api/*": {"origins": "http://localhost:3000"}})

@app.route('/')
def index():
    return "TIS-11 Assembler Backend is running!"

@app.route('/api/ping', methods=['GET'])
def ping():
    logger.debug("Ping endpoint called")
    return jsonify({"message": "pong"})

@app.route('/api/assemble', methods=['POST'])
def handle_assemble():
    try:
        data = request.get_json(silent=True)
        if not data or not isinstance(data.get('source'), str):
            return jsonify({"errors": [{"message": "Missing 'source' key in request."}]}), 400
        source = data['source']
        logger.debug(f"Received source for assembly: {source[:100]}...")
        # Fresh assembler per request, collect_all is per call
        assembler = TisAssembler(collect_all=bool(data.get('collect_all', False)))
        result = assembler.assemble(source)
        if result['errors']:
            logger.warning(f"Assembly failed: {result['errors']}")
            result['listing'] = ""
        else:
            logger.debug(f"Assembly successful. Nodes: {len(result['nodes'])}")
            result['listing'] = format_listing(result['nodes'])
        return jsonify(result)
    except Exception as e:
        logger.error(f"Error during assembly: {e}", exc_info=True)
        return jsonify({"errors": [{"message": f"Internal server error during assembly: {e}"}]}), 500

@app.route('/api/disassemble', methods=['POST'])
def handle_disassemble():
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        if isinstance(data.get('listing'), str):
            nodes = parse_listing(data['listing'])
        elif isinstance(data.get('nodes'), list) and \
                all(isinstance(n, dict) and isinstance(n.get('words'), list) for n in data['nodes']):
            nodes = data['nodes']
        else:
            return jsonify({"errors": [{"message": "Missing/invalid 'listing' (string) or 'nodes' (list of {header, words}) key."}]}), 400
        logger.debug(f"Received {len(nodes)} node(s) for disassembly")
        # Fresh disassembler per request, it keeps per-call error state
        result = TisDisassembler().disassemble(nodes)
        return jsonify(result)
    except Exception as e:
        logger.error(f"Error during disassembly: {e}", exc_info=True)
        return jsonify({"errors": [{"message": f"Internal server error during disassembly: {e}"}]}), 500


if __name__ == '__main__':
    # Or run with `flask --app tisasm.app run --port 5001` from the root directory
    app.run(debug=False, port=5001)
