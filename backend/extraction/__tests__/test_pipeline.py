"""
Unit tests for the AI extraction pipeline.

The model is replaced with StubModelClient (see conftest.py), so batching,
error isolation and normalization are exercised without network access.

Run: python3 -m pytest extraction/__tests__/test_pipeline.py -v
"""

import asyncio
import json

import pytest

from extraction.pipeline import (
    AIExtractionPipeline,
    build_user_prompt,
    pair_with_raw,
    parse_model_jobs,
    PROMPT_DESCRIPTION_CHARS,
)
from utils.errors import MalformedModelResponse, ModelAuthenticationError, ModelError
from workers.types import RawJobData


def make_raw_jobs(count: int) -> list[RawJobData]:
    """Create count raw postings with distinct titles."""
    return [
        RawJobData(
            title=f"Engineer {i}",
            company="Acme",
            location="Remote",
            description=f"Role {i}. Salary $100k - $120k.",
            source_url=f"https://acme.com/jobs/{i}",
            external_id=f"job-{i}",
        )
        for i in range(count)
    ]


def jobs_body(titles: list[str]) -> str:
    """Model body echoing Refs in input order."""
    return json.dumps({"jobs": [
        {"ref": ref, "title": t, "company": "Acme"} for ref, t in enumerate(titles, start=1)
    ]})


class TestParseModelJobs:

    def test_array(self):
        assert parse_model_jobs('[{"title": "A"}]') == [{"title": "A"}]

    def test_wrapped(self):
        assert parse_model_jobs('{"jobs": [{"title": "A"}]}') == [{"title": "A"}]

    def test_single_object(self):
        assert parse_model_jobs('{"title": "A"}') == [{"title": "A"}]

    def test_object_without_jobs(self):
        assert parse_model_jobs('{"message": "none found"}') == []

    @pytest.mark.parametrize("body", ["", "   ", "not json", "42", '"jobs"'])
    def test_malformed(self, body):
        with pytest.raises(MalformedModelResponse):
            parse_model_jobs(body)


class TestBuildUserPrompt:

    def test_description_truncated(self):
        raw = RawJobData(title="T", description="x" * (PROMPT_DESCRIPTION_CHARS + 500))
        prompt = build_user_prompt([raw])
        assert "x" * PROMPT_DESCRIPTION_CHARS in prompt
        assert "x" * (PROMPT_DESCRIPTION_CHARS + 1) not in prompt

    def test_raw_html_used_when_no_description(self):
        prompt = build_user_prompt([RawJobData(company="Acme", raw_html="Open roles: Engineer")])
        assert "Open roles: Engineer" in prompt
        assert "Title: N/A" in prompt

    def test_page_text_not_cut_to_description_limit(self):
        page = "a" * (PROMPT_DESCRIPTION_CHARS + 1000) + " Staff Engineer"
        prompt = build_user_prompt([RawJobData(company="Acme", raw_html=page)])
        assert "Staff Engineer" in prompt

    def test_each_posting_has_a_ref(self):
        prompt = build_user_prompt(make_raw_jobs(3))
        assert "Ref: 1\nTitle: Engineer 0" in prompt
        assert "Ref: 3\nTitle: Engineer 2" in prompt


class TestPairWithRaw:

    def test_pairs_by_ref_not_position(self):
        raw = make_raw_jobs(2)
        records = [{"ref": 2, "title": "Engineer 1"}, {"ref": "1", "title": "Engineer 0"}]
        assert pair_with_raw(records, raw) == [raw[1], raw[0]]

    def test_ref_text_variants(self):
        raw = make_raw_jobs(2)
        assert pair_with_raw([{"ref": "Job 2"}, {"ref": 1.0}], raw) == [raw[1], raw[0]]

    def test_unresolved_ref_is_unpaired(self):
        raw = make_raw_jobs(2)
        records = [{"title": "Engineer 0"}, {"ref": 7}, {"ref": "none"}, {"ref": True}, "junk"]
        assert pair_with_raw(records, raw) == [None, None, None, None, None]

    def test_single_posting_batch_without_ref(self):
        raw = make_raw_jobs(1)
        assert pair_with_raw([{"title": "A"}, {"title": "B"}], raw) == [raw[0], raw[0]]
        assert pair_with_raw([{"title": "A", "ref": 5}], raw) == [None]


class TestExtract:

    def test_empty_input_makes_no_calls(self, stub_model_client):
        client = stub_model_client()
        result = asyncio.run(AIExtractionPipeline(client).extract([]))

        assert result.jobs == []
        assert result.success is True
        assert client.calls == []

    def test_batches(self, stub_model_client):
        """25 postings at batch size 10 → 3 model calls."""
        raw = make_raw_jobs(25)
        client = stub_model_client([
            jobs_body([j.title for j in raw[0:10]]),
            jobs_body([j.title for j in raw[10:20]]),
            jobs_body([j.title for j in raw[20:25]]),
        ])
        pipeline = AIExtractionPipeline(client, batch_size=10)

        result = asyncio.run(pipeline.extract(raw, source="greenhouse"))

        assert len(client.calls) == 3
        assert len(result.jobs) == 25
        assert result.success is True
        assert result.tokens_used == 300
        assert result.cost > 0
        assert {j.source for j in result.jobs} == {"greenhouse"}
        # Paired by Ref, so the native id survives
        assert result.jobs[0].external_id == "job-0"
        assert result.jobs[0].remote_type == "remote"
        assert (result.jobs[0].salary_min, result.jobs[0].salary_max) == (100000, 120000)

    def test_malformed_batch_is_isolated(self, stub_model_client):
        raw = make_raw_jobs(3)
        client = stub_model_client([
            jobs_body(["Engineer 0"]),
            "this is not json",
            jobs_body(["Engineer 2"]),
        ])
        pipeline = AIExtractionPipeline(client, batch_size=1)

        result = asyncio.run(pipeline.extract(raw))

        assert [j.title for j in result.jobs] == ["Engineer 0", "Engineer 2"]
        assert result.success is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Batch 2 failed:")

    def test_model_error_is_isolated(self, stub_model_client):
        client = stub_model_client([ModelError("rate limited"), jobs_body(["Engineer 1"])])
        pipeline = AIExtractionPipeline(client, batch_size=1)

        result = asyncio.run(pipeline.extract(make_raw_jobs(2)))

        assert result.errors == ["Batch 1 failed: rate limited"]
        assert len(result.jobs) == 1

    def test_authentication_error_propagates(self, stub_model_client):
        client = stub_model_client([ModelAuthenticationError("bad key")])
        pipeline = AIExtractionPipeline(client)

        with pytest.raises(ModelAuthenticationError):
            asyncio.run(pipeline.extract(make_raw_jobs(1)))

    def test_html_capture_yields_many_jobs(self, stub_model_client):
        """One captured page can list several postings."""
        raw = [RawJobData(company="Acme", source_url="https://acme.com/careers", raw_html="<ul>...</ul>")]
        client = stub_model_client([json.dumps([
            {"title": "Designer", "applicationUrl": "https://acme.com/careers/designer"},
            {"title": "Engineer", "applicationUrl": "https://acme.com/careers/engineer"},
        ])])

        result = asyncio.run(AIExtractionPipeline(client).extract(raw, source="custom"))

        assert [j.title for j in result.jobs] == ["Designer", "Engineer"]
        assert [j.external_id for j in result.jobs] == [
            "https://acme.com/careers/designer",
            "https://acme.com/careers/engineer",
        ]

    def test_reordered_model_output_keeps_native_ids(self, stub_model_client):
        raw = [
            RawJobData(title="Backend Engineer", company="Acme", description="Build APIs",
                       source_url="https://gh/acme/1", external_id="1"),
            RawJobData(title="Product Designer", company="Acme", description="Design things",
                       source_url="https://gh/acme/2", external_id="2"),
        ]
        client = stub_model_client([json.dumps({"jobs": [
            {"ref": 2, "title": "Product Designer"},
            {"ref": 1, "title": "Backend Engineer"},
        ]})])

        result = asyncio.run(AIExtractionPipeline(client).extract(raw, source="greenhouse"))

        assert [(j.title, j.external_id, j.application_url) for j in result.jobs] == [
            ("Product Designer", "2", "https://gh/acme/2"),
            ("Backend Engineer", "1", "https://gh/acme/1"),
        ]

    def test_same_title_postings_stay_distinct(self, stub_model_client):
        raw = [
            RawJobData(title="Engineer", company="Acme", location="NYC", external_id="10"),
            RawJobData(title="Engineer", company="Acme", location="London", external_id="11"),
        ]
        client = stub_model_client([json.dumps({"jobs": [
            {"ref": 2, "title": "Engineer", "location": "London"},
            {"ref": 1, "title": "Engineer", "location": "NYC"},
        ]})])

        result = asyncio.run(AIExtractionPipeline(client).extract(raw))

        assert [(j.location, j.external_id) for j in result.jobs] == [("London", "11"), ("NYC", "10")]

    def test_record_without_ref_never_borrows_a_native_id(self, stub_model_client):
        client = stub_model_client([json.dumps({"jobs": [{"title": "Mystery Role", "company": "Acme"}]})])

        result = asyncio.run(AIExtractionPipeline(client).extract(make_raw_jobs(2)))

        assert len(result.jobs) == 1
        assert result.jobs[0].external_id not in {"job-0", "job-1"}
        assert len(result.jobs[0].external_id) == 40

    def test_structured_postings_skip_the_model(self, stub_model_client):
        structured = RawJobData(
            title="Data Engineer", company="Acme", source_url="https://acme.com/jobs/de",
            external_id="https://acme.com/jobs/de",
            structured={"title": "Data Engineer", "company": "Acme", "location": "Remote"},
        )
        client = stub_model_client()

        result = asyncio.run(AIExtractionPipeline(client).extract([structured], source="custom"))

        assert client.calls == []
        assert [(j.title, j.external_id, j.remote_type) for j in result.jobs] == [
            ("Data Engineer", "https://acme.com/jobs/de", "remote"),
        ]
        assert result.success is True

    def test_invalid_batch_size(self, stub_model_client):
        with pytest.raises(ValueError):
            AIExtractionPipeline(stub_model_client(), batch_size=0)


class TestExtractSkills:

    def test_enough_keywords_skips_model(self, stub_model_client):
        client = stub_model_client()
        skills = asyncio.run(
            AIExtractionPipeline(client).extract_skills("Python, React and Docker on AWS")
        )

        assert skills == ["python", "react", "aws", "docker"]
        assert client.calls == []

    def test_escalates_when_few_keywords(self, stub_model_client):
        client = stub_model_client([{"skills": ["Python", "Elixir", " "]}])
        skills = asyncio.run(AIExtractionPipeline(client).extract_skills("We write Python"))

        assert skills == ["python", "elixir"]
        assert len(client.calls) == 1
        assert client.calls[0]["max_tokens"] == 500

    def test_model_failure_falls_back_to_keywords(self, stub_model_client):
        client = stub_model_client([ModelError("boom")])
        skills = asyncio.run(AIExtractionPipeline(client).extract_skills("We write Python"))

        assert skills == ["python"]
