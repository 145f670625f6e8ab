# load_test.py
import argparse
import asyncio
import json
import random
import statistics
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

# --- Coordinate generator (whole globe) ---
def gen_coord() -> Tuple[float, float]:
    lat = round(random.uniform(-90.0, 90.0), 6)
    lon = round(random.uniform(-180.0, 180.0), 6)
    return lat, lon

def build_request(mode: str, batch_size: int) -> Tuple[str, Optional[dict], Optional[list]]:
    """Return (method, query params, json body) for one request."""
    if mode == "get":
        lat, lon = gen_coord()
        return "GET", {"lat": str(lat), "lon": str(lon)}, None
    body = []
    for _ in range(batch_size):
        lat, lon = gen_coord()
        body.append({"lat": lat, "lon": lon})
    return "POST", None, body

@dataclass
class Sample:
    ok: bool
    status: Optional[int]
    latency_ms: float
    error: Optional[str]

# --- requests client (threaded) ---
def run_requests(url: str, total: int, concurrency: int, timeout: float,
                 mode: str = "get", batch_size: int = 10) -> List[Sample]:
    import requests
    from concurrent.futures import ThreadPoolExecutor, as_completed

    session = requests.Session()
    samples: List[Sample] = []

    def do_one() -> Sample:
        method, params, body = build_request(mode, batch_size)
        t0 = time.perf_counter()
        try:
            r = session.request(method, url, params=params, json=body, timeout=timeout)
            lat_ms = (time.perf_counter() - t0) * 1000
            return Sample(ok=r.ok, status=r.status_code, latency_ms=lat_ms, error=None if r.ok else f"HTTP {r.status_code}")
        except requests.RequestException as e:
            lat_ms = (time.perf_counter() - t0) * 1000
            return Sample(ok=False, status=None, latency_ms=lat_ms, error=str(e))

    with ThreadPoolExecutor(max_workers=concurrency) as ex:
        futs = [ex.submit(do_one) for _ in range(total)]
        for f in as_completed(futs):
            samples.append(f.result())
    session.close()
    return samples

# --- aiohttp client (async) ---
async def run_aiohttp(url: str, total: int, concurrency: int, timeout: float,
                      mode: str = "get", batch_size: int = 10) -> List[Sample]:
    import aiohttp
    sem = asyncio.Semaphore(concurrency)
    samples: List[Sample] = []

    async def do_one(session: aiohttp.ClientSession):
        method, params, body = build_request(mode, batch_size)
        t0 = time.perf_counter()
        async with sem:
            try:
                async with session.request(method, url, params=params, json=body,
                                           timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
                    await resp.read()
                    lat_ms = (time.perf_counter() - t0) * 1000
                    samples.append(Sample(ok=200 <= resp.status < 300, status=resp.status, latency_ms=lat_ms,
                                          error=None if 200 <= resp.status < 300 else f"HTTP {resp.status}"))
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                lat_ms = (time.perf_counter() - t0) * 1000
                samples.append(Sample(ok=False, status=None, latency_ms=lat_ms, error=str(e) or type(e).__name__))

    conn = aiohttp.TCPConnector(limit=0)
    async with aiohttp.ClientSession(connector=conn) as session:
        tasks = [asyncio.create_task(do_one(session)) for _ in range(total)]
        await asyncio.gather(*tasks)
    return samples

# --- Metrics ---
def percentile(data: List[float], p: float) -> float:
    if not data:
        return float("nan")
    k = (len(data) - 1) * (p / 100)
    f = int(k)
    c = min(f + 1, len(data) - 1)
    if f == c:
        return data[f]
    d0 = data[f] * (c - k)
    d1 = data[c] * (k - f)
    return d0 + d1

def summarize(samples: List[Sample], started_at: float, ended_at: float) -> dict:
    total = len(samples)
    ok = sum(1 for s in samples if s.ok)
    dur_s = ended_at - started_at
    latencies = sorted(s.latency_ms for s in samples)
    errs = {}
    for s in samples:
        if not s.ok:
            key = s.error or f"HTTP {s.status}"
            errs[key] = errs.get(key, 0) + 1
    return {
        "total": total,
        "ok": ok,
        "fail": total - ok,
        "duration_s": dur_s,
        "rps": total / dur_s if dur_s > 0 else float("inf"),
        "mean": statistics.fmean(latencies) if latencies else float("nan"),
        "p50": percentile(latencies, 50),
        "p90": percentile(latencies, 90),
        "p95": percentile(latencies, 95),
        "p99": percentile(latencies, 99),
        "errors": dict(sorted(errs.items(), key=lambda x: x[1], reverse=True)[:5]),
    }

def print_summary(summary: dict):
    print("\n=== Results ===")
    print(f"Total req: {summary['total']} | OK: {summary['ok']} | Fail: {summary['fail']}")
    print(f"Duration: {summary['duration_s']:.2f}s | RPS: {summary['rps']:.2f}")
    print(f"Latency (ms): mean {summary['mean']:.1f} | p50 {summary['p50']:.1f} | p90 {summary['p90']:.1f} "
          f"| p95 {summary['p95']:.1f} | p99 {summary['p99']:.1f}")
    if summary["errors"]:
        print("Most common errors:")
        for k, v in summary["errors"].items():
            print(f"  {k}: {v}")

def main():
    ap = argparse.ArgumentParser(description="Load the on-water API with random coordinates.")
    ap.add_argument("--url", default="http://localhost:8000/", help="Endpoint URL")
    ap.add_argument("-n", "--requests", type=int, default=200, help="Total number of requests")
    ap.add_argument("-c", "--concurrency", type=int, default=50, help="Concurrency (threads/coroutines)")
    ap.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout (seconds)")
    ap.add_argument("--engine", choices=["requests", "aiohttp"], default="requests", help="HTTP engine")
    ap.add_argument("--mode", choices=["get", "post"], default="get", help="Single GET or batch POST")
    ap.add_argument("--batch-size", type=int, default=10, help="Coordinates per POST body")
    ap.add_argument("--save", help="Save raw samples as JSON (path)")
    args = ap.parse_args()

    random.seed(42)  # reproducible

    t0 = time.perf_counter()
    if args.engine == "requests":
        samples = run_requests(args.url, args.requests, args.concurrency, args.timeout, args.mode, args.batch_size)
    else:
        samples = asyncio.run(run_aiohttp(args.url, args.requests, args.concurrency, args.timeout,
                                          args.mode, args.batch_size))
    t1 = time.perf_counter()

    print_summary(summarize(samples, t0, t1))

    if args.save:
        with open(args.save, "w", encoding="utf-8") as f:
            json.dump([s.__dict__ for s in samples], f, ensure_ascii=False, indent=2)
        print(f"Saved: {args.save}")

if __name__ == "__main__":
    main()
