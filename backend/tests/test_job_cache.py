from __future__ import annotations

import json
from itertools import permutations

from gigs.config import Settings
from gigs.services.job_cache import JobCache, build_cache_key, build_redis_client


def test_cache_key_is_sorted_and_delimited():
    assert build_cache_key("jobs", {"page": "2", "city": "Berlin"}) == "jobs:city:Berlin|page:2"


def test_cache_key_ignores_parameter_arrival_order():
    params = [("city", "Berlin"), ("jobType", "remote"), ("page", "1"), ("limit", "2")]

    keys = {build_cache_key("jobs", dict(order)) for order in permutations(params)}

    assert len(keys) == 1


def test_cache_key_flattens_list_values():
    assert build_cache_key("jobs", {"skills": ["python", "sql"]}) == "jobs:skills:python,sql"


def test_set_stores_payload_with_ttl_and_tracks_key(cache, fake_redis):
    cache.set("jobs:city:Berlin", {"jobs": [], "totalJobs": 0}, 60, "jobs")

    assert json.loads(fake_redis.values["jobs:city:Berlin"]) == {"jobs": [], "totalJobs": 0}
    assert fake_redis.ttls["jobs:city:Berlin"] == 60
    assert fake_redis.smembers("jobs:keys") == {"jobs:city:Berlin"}
    assert cache.get("jobs:city:Berlin") == {"jobs": [], "totalJobs": 0}


def test_invalidate_removes_every_indexed_key_and_the_index(cache, fake_redis):
    cache.set("jobs:page:1", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    cache.set("jobs:page:2", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    cache.set("related-jobs:abc", {"jobs": [], "totalJobs": 0}, 300, "related-jobs")

    removed = cache.invalidate("jobs")

    assert removed == 2
    assert cache.get("jobs:page:1") is None
    assert cache.get("jobs:page:2") is None
    assert "jobs:keys" not in fake_redis.sets
    assert cache.get("related-jobs:abc") is not None


def test_invalidate_without_arguments_covers_all_job_namespaces(cache, fake_redis):
    cache.set("jobs:page:1", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    cache.set("related-jobs:abc", {"jobs": [], "totalJobs": 0}, 300, "related-jobs")

    assert cache.invalidate() == 2
    assert fake_redis.values == {}


def test_lost_index_just_means_misses(cache, fake_redis):
    cache.set("jobs:page:1", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    fake_redis.sets.clear()

    assert cache.invalidate("jobs") == 0


def test_corrupt_payload_is_treated_as_miss(cache, fake_redis):
    fake_redis.values["jobs:page:1"] = "{not json"

    assert cache.get("jobs:page:1") is None


def test_connection_errors_never_escape(broken_cache):
    assert broken_cache.get("jobs:page:1") is None
    broken_cache.set("jobs:page:1", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    assert broken_cache.invalidate() == 0


def test_disabled_cache_is_a_no_op():
    cache = JobCache(None)

    assert cache.enabled is False
    assert cache.get("jobs:page:1") is None
    cache.set("jobs:page:1", {"jobs": [], "totalJobs": 0}, 60, "jobs")
    assert cache.invalidate() == 0


def test_redis_client_only_built_when_enabled():
    assert build_redis_client(Settings(enable_redis_cache=False)) is None
    client = build_redis_client(Settings(enable_redis_cache=True, redis_url="redis://localhost:6379/3"))
    assert client.connection_pool.connection_kwargs["db"] == 3
