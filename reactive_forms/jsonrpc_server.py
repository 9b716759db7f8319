#!/usr/bin/env python3
"""
JSON-RPC 2.0 Server for FormService

Exposes live forms to any process that can spawn a child and speak
newline-delimited JSON over stdin/stdout, e.g. a UI written in another
language that renders the form and forwards user input.

Protocol: JSON-RPC 2.0 over stdin/stdout (newline-delimited JSON)
Specification: https://www.jsonrpc.org/specification

Usage:
    python -m reactive_forms.jsonrpc_server [--debug] [--config PATH]

Example request (stdin):
    {"jsonrpc":"2.0","id":1,"method":"create_form","params":{"source":"customer"}}

Example response (stdout):
    {"jsonrpc":"2.0","id":1,"result":{"form_id":"customer-1"}}
"""

import sys
import json
import signal
import logging
import argparse
from typing import Any, Dict, Optional

from reactive_forms import FormService
from reactive_forms.errors import FormError

logger = logging.getLogger(__name__)


class FormJsonRpcServer:
    """JSON-RPC 2.0 server wrapping the FormService API."""

    # JSON-RPC error codes
    ERROR_PARSE = -32700        # Invalid JSON
    ERROR_INVALID_REQUEST = -32600  # Invalid JSON-RPC structure
    ERROR_METHOD_NOT_FOUND = -32601  # Unknown method
    ERROR_INVALID_PARAMS = -32602   # Invalid parameters
    ERROR_INTERNAL = -32000      # Application error (catch-all)
    ERROR_FORM = -32001          # Form usage error (bad path, incomplete value, ...)

    def __init__(self, service: Optional[FormService] = None, debug: bool = False):
        """
        Initialize JSON-RPC server.

        Args:
            service: FormService to expose (default: a new one)
            debug: Log requests and responses
        """
        self.service = service or FormService()
        self.running = False
        self.debug = debug

        # Method dispatch table
        self.methods = {
            'create_form': self._handle_create_form,
            'destroy_form': self._handle_destroy_form,
            'list_forms': self._handle_list_forms,
            'get_state': self._handle_get_state,
            'get_messages': self._handle_get_messages,
            'set_value': self._handle_set_value,
            'patch_value': self._handle_patch_value,
            'mark_touched': self._handle_mark_touched,
            'mark_dirty': self._handle_mark_dirty,
            'revalidate': self._handle_revalidate,
            'list_validators': self._handle_list_validators,
        }

    def _log(self, message: str):
        """Log debug message (stderr only; stdout carries the protocol)."""
        if self.debug:
            logger.debug(message)

    def start_server(self):
        """
        Start the JSON-RPC server loop.

        Reads requests from stdin, processes them, writes responses to stdout.
        Runs until EOF or stop signal received.
        """
        self.running = True
        self._log("FormService JSON-RPC server started")

        while self.running:
            try:
                line = sys.stdin.readline()

                if not line:
                    self._log("EOF received, shutting down")
                    break

                if not line.strip():
                    continue

                self._log(f"Received: {line.strip()}")
                response = self.handle_request(line)
                self._send_response(response)

            except KeyboardInterrupt:
                self._log("KeyboardInterrupt received, shutting down")
                break

        self.service.close()
        self._log("Server stopped")

    def stop_server(self):
        """
        Stop the server gracefully.

        Sets running flag to False, causing the main loop to exit.
        """
        self.running = False
        self._log("Stop signal received")

    def handle_request(self, request_json: str) -> Dict[str, Any]:
        """
        Parse and process a JSON-RPC request.

        Args:
            request_json: JSON-RPC request string

        Returns:
            JSON-RPC response dict (success or error)
        """
        request_id = None

        try:
            try:
                request = json.loads(request_json)
            except json.JSONDecodeError as e:
                return self._error_response(None, self.ERROR_PARSE,
                                            f"Parse error: {e}")

            if not isinstance(request, dict):
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                            "Request must be a JSON object")

            if request.get("jsonrpc") != "2.0":
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                            f"Invalid JSON-RPC version: {request.get('jsonrpc')}")

            request_id = request.get("id")
            method = request.get("method")
            params = request.get("params", {})

            if not method:
                return self._error_response(request_id, self.ERROR_INVALID_REQUEST,
                                            "Missing 'method' field")

            if not isinstance(params, dict):
                return self._error_response(request_id, self.ERROR_INVALID_PARAMS,
                                            f"Params must be an object, got {type(params).__name__}")

            if method not in self.methods:
                return self._error_response(request_id, self.ERROR_METHOD_NOT_FOUND,
                                            f"Method not found: {method}")

            # Debounced reactions that came due since the last request
            self.service.run_pending()

            self._log(f"Dispatching method: {method}")
            result = self.methods[method](params)
            return self._success_response(request_id, result)

        except FormError as e:
            self._log(f"Form error: {e}")
            return self._error_response(request_id, self.ERROR_FORM, str(e),
                                        data={"type": type(e).__name__})

        except ValueError as e:
            return self._error_response(request_id, self.ERROR_INVALID_PARAMS, str(e))

        except Exception as e:
            logger.exception("Error processing request")
            return self._error_response(request_id, self.ERROR_INTERNAL,
                                        f"Internal error: {e}")

    # Method handlers - wrap FormService API

    def _require(self, params: Dict[str, Any], name: str) -> Any:
        if name not in params:
            raise ValueError(f"Missing required parameter: {name}")
        return params[name]

    def _handle_create_form(self, params: Dict[str, Any]) -> Any:
        """Handle 'create_form' method."""
        source = params.get('source')
        definition = params.get('definition')
        if source is None and definition is None:
            raise ValueError("Missing required parameter: source or definition")
        form_id = self.service.create_form(
            source=source, definition=definition, form_id=params.get('form_id')
        )
        return {"form_id": form_id, "state": self.service.get_state(form_id)}

    def _handle_destroy_form(self, params: Dict[str, Any]) -> Any:
        """Handle 'destroy_form' method."""
        self.service.destroy_form(self._require(params, 'form_id'))
        return {"status": "ok"}

    def _handle_list_forms(self, params: Dict[str, Any]) -> Any:
        """Handle 'list_forms' method."""
        return self.service.list_forms()

    def _handle_get_state(self, params: Dict[str, Any]) -> Any:
        """Handle 'get_state' method."""
        return self.service.get_state(self._require(params, 'form_id'), params.get('path'))

    def _handle_get_messages(self, params: Dict[str, Any]) -> Any:
        """Handle 'get_messages' method."""
        return self.service.get_messages(self._require(params, 'form_id'))

    def _handle_set_value(self, params: Dict[str, Any]) -> Any:
        """Handle 'set_value' method."""
        return self.service.set_value(
            self._require(params, 'form_id'),
            params.get('path'),
            self._require(params, 'value'),
        )

    def _handle_patch_value(self, params: Dict[str, Any]) -> Any:
        """Handle 'patch_value' method."""
        return self.service.patch_value(
            self._require(params, 'form_id'),
            params.get('path'),
            self._require(params, 'value'),
        )

    def _handle_mark_touched(self, params: Dict[str, Any]) -> Any:
        """Handle 'mark_touched' method."""
        return self.service.mark_touched(self._require(params, 'form_id'), params.get('path'))

    def _handle_mark_dirty(self, params: Dict[str, Any]) -> Any:
        """Handle 'mark_dirty' method."""
        return self.service.mark_dirty(self._require(params, 'form_id'), params.get('path'))

    def _handle_revalidate(self, params: Dict[str, Any]) -> Any:
        """Handle 'revalidate' method."""
        return self.service.revalidate(self._require(params, 'form_id'), params.get('path'))

    def _handle_list_validators(self, params: Dict[str, Any]) -> Any:
        """Handle 'list_validators' method."""
        return self.service.list_validators()

    # Response formatting

    def _success_response(self, request_id: Any, result: Any) -> Dict[str, Any]:
        """Format successful JSON-RPC response."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": result
        }

    def _error_response(self, request_id: Any, code: int, message: str,
                        data: Optional[Any] = None) -> Dict[str, Any]:
        """Format JSON-RPC error response."""
        error = {
            "code": code,
            "message": message
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": error
        }

    def _send_response(self, response: Dict[str, Any]):
        """Send JSON-RPC response to stdout."""
        response_json = json.dumps(response)
        self._log(f"Sending: {response_json}")
        sys.stdout.write(response_json + "\n")
        sys.stdout.flush()


def main():
    """Main entry point for JSON-RPC server."""
    parser = argparse.ArgumentParser(
        description="FormService JSON-RPC 2.0 Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example usage:
  python -m reactive_forms.jsonrpc_server
  python -m reactive_forms.jsonrpc_server --debug --config my-settings.yaml

Supported methods:
  - create_form, destroy_form, list_forms
  - get_state, get_messages, list_validators
  - set_value, patch_value, mark_touched, mark_dirty, revalidate

Protocol: JSON-RPC 2.0 over stdin/stdout
See: https://www.jsonrpc.org/specification
        """
    )
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging to stderr')
    parser.add_argument('--config', default=None,
                        help='YAML file overriding the bundled settings')

    args = parser.parse_args()

    if args.debug:
        logging.basicConfig(
            stream=sys.stderr,
            level=logging.DEBUG,
            format="[%(levelname)s] %(name)s: %(message)s",
        )

    server = FormJsonRpcServer(FormService(config_path=args.config), debug=args.debug)

    # Handle signals for graceful shutdown
    def signal_handler(sig, frame):
        server.stop_server()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    # Start server (blocks until stopped)
    server.start_server()


if __name__ == "__main__":
    main()
