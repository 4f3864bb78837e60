# loyalloop/monitoring.py
import time
import socket
import threading
import logging
import psutil
from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry
from prometheus_client.exposition import make_wsgi_app
from wsgiref.simple_server import make_server, WSGIServer
from socketserver import ThreadingMixIn

from loyalloop.loyalty_token import LoyaltyToken
from loyalloop.simple_dex import SimpleDEX

logger = logging.getLogger(__name__)


# Create a threaded WSGI server for the Prometheus metrics
class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    """A WSGI server that runs in a separate thread to not block the main application."""
    allow_reuse_address = True
    daemon_threads = True


class Monitor:
    def __init__(self, chain, host="127.0.0.1", port=9090):
        self.chain = chain
        self.host = host
        self.port = port
        self.server = None
        self.thread = None

        # Isolated registry so several chains can coexist in one process
        self.registry = CollectorRegistry()

        self.call_counter = Counter('loyalloop_calls_total', 'Contract calls processed', ['method', 'status'], registry=self.registry)
        self.call_latency = Histogram('loyalloop_call_latency_seconds', 'Time to execute a contract call', registry=self.registry)
        self.block_number = Gauge('loyalloop_block_number', 'Calls included so far', registry=self.registry)
        self.total_supply = Gauge('loyalty_token_total_supply', 'Circulating token supply', ['token'], registry=self.registry)
        self.total_minted = Gauge('loyalty_token_total_minted', 'Tokens ever minted', ['token'], registry=self.registry)
        self.total_burned = Gauge('loyalty_token_total_burned', 'Tokens ever burned', ['token'], registry=self.registry)
        self.coupon_count = Gauge('loyalty_token_coupons', 'Coupons created', ['token'], registry=self.registry)
        self.eth_liquidity = Gauge('dex_eth_liquidity', 'Tracked native liquidity', ['pool'], registry=self.registry)
        self.token_liquidity = Gauge('dex_token_liquidity', 'Tracked token liquidity', ['pool'], registry=self.registry)
        self.cpu_usage = Gauge('system_cpu_percent', 'Current CPU usage percent', registry=self.registry)
        self.memory_usage = Gauge('system_memory_percent', 'Current memory usage percent', registry=self.registry)

    def start_server(self):
        """Manually creates and starts the Prometheus HTTP server with retry logic."""
        app = make_wsgi_app(self.registry)

        max_retries = 5
        retry_delay = 2

        for attempt in range(max_retries):
            try:
                self.server = make_server(self.host, self.port, app, ThreadingWSGIServer)
                self.server.socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

                self.thread = threading.Thread(target=self.server.serve_forever)
                self.thread.daemon = True
                self.thread.start()
                logger.info(f"Prometheus server started on http://{self.host}:{self.port}")
                return
            except OSError as e:
                if e.errno == 98:  # Address already in use
                    if attempt < max_retries - 1:
                        logger.warning(f"Port {self.port} in use, retrying in {retry_delay}s (attempt {attempt+1}/{max_retries})...")
                        time.sleep(retry_delay)
                    else:
                        logger.error(f"Failed to bind to port {self.port} after {max_retries} attempts")
                        raise
                else:
                    raise

    def stop_server(self):
        """Stops the HTTP server."""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            self.server = None
            logger.info("Prometheus server stopped.")

    def update(self):
        self.block_number.set(self.chain.block_number)

        for address, contract in self.chain.contracts.items():
            label = address.hex()
            if isinstance(contract, LoyaltyToken):
                minted, burned, supply = contract.get_token_metrics()
                self.total_supply.labels(token=label).set(supply)
                self.total_minted.labels(token=label).set(minted)
                self.total_burned.labels(token=label).set(burned)
                self.coupon_count.labels(token=label).set(len(contract.coupons))
            elif isinstance(contract, SimpleDEX):
                self.eth_liquidity.labels(pool=label).set(contract.eth_liquidity)
                self.token_liquidity.labels(pool=label).set(contract.token_liquidity)

        self.cpu_usage.set(psutil.cpu_percent())
        self.memory_usage.set(psutil.virtual_memory().percent)

    def record_call(self, method: str, status: str, latency: float):
        self.call_counter.labels(method=method, status=status).inc()
        self.call_latency.observe(latency)
