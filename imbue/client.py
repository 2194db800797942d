"""
Client for a remote imbue service.
"""

from .engine import DataPoint, Strategy


def request_imbue(url, dataset, strategy, timeout=60):
    """
    Ask a running imbue server to fill the gaps of ``dataset``.

    Parameters
    ----------
    url : str
        Base URL of the service, or the full ``/imbue`` endpoint.
    dataset : iterable
        Known points, as DataPoints, ``(x, y)`` pairs or ``{x, y}`` mappings.
    strategy : str or Strategy
        One of ``average``, ``zeroed``, ``last_known``.
    timeout : float
        Request timeout in seconds.

    Returns
    -------
    list of DataPoint
        Only the synthesized points, in the order the server returned them.
    """
    import requests

    strategy = Strategy.parse(strategy)
    endpoint = url if url.rstrip("/").endswith("/imbue") else url.rstrip("/") + "/imbue"
    payload = {
        "dataset": [DataPoint.coerce(p).to_dict() for p in dataset],
        "strategy": strategy.value,
    }

    response = requests.post(endpoint, json=payload, timeout=timeout)
    response.raise_for_status()
    data = response.json()

    if "dataset" not in data:
        raise ValueError(f"No dataset returned from imbue service. Response: {data}")

    return [DataPoint.coerce(p) for p in data["dataset"]]
