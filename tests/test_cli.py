from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import cli
from conftest import lead
from graph.errors import RetrievalUnavailable, UnknownSpecialist
from graph.state import NoRelevantLead, QualificationResult


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("MAX_CANDIDATES", "MIN_RELEVANCE", "LLM_TIMEOUT", "REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


def fake_pipeline(**run_kwargs):
    pipeline = MagicMock()
    pipeline.run = AsyncMock(**run_kwargs)
    return pipeline


class TestCli:
    """Test the command line entry point."""

    def test_parse_args_requires_command(self):
        with pytest.raises(SystemExit):
            cli.parse_args([])

    def test_parse_query_text(self):
        args = cli.parse_args(["query", "buyer at Acme"])
        assert args.command == "query"
        assert args.text == "buyer at Acme"

    def test_query_prints_result(self, capsys):
        result = QualificationResult(
            selected_lead=lead(0.82, "Jane Doe, Acme Corp"),
            score_justification='{"score": 8}',
            draft_email="Hi Jane",
        )
        with patch("factory.build_pipeline", return_value=fake_pipeline(return_value=result)):
            assert cli.main(["query", "buyer at Acme"]) == 0

        out = capsys.readouterr().out
        assert "Top Lead (score: 0.82)" in out
        assert "Hi Jane" in out

    def test_query_without_relevant_lead_exits_cleanly(self, capsys):
        with patch("factory.build_pipeline",
                   return_value=fake_pipeline(return_value=NoRelevantLead(search_query="Acme"))):
            assert cli.main(["query", "someone at Acme"]) == 0

        assert "No highly relevant leads found." in capsys.readouterr().out

    def test_hard_error_exits_with_1(self, capsys):
        with patch("factory.build_pipeline",
                   return_value=fake_pipeline(side_effect=RetrievalUnavailable("index down"))):
            assert cli.main(["query", "buyer at Acme"]) == 1

        assert "index down" in capsys.readouterr().err

    def test_ingest_uses_leads_path(self, tmp_path, capsys):
        leads = tmp_path / "leads.md"
        leads.write_text("Jane Doe\n---\nJohn Roe\n", encoding="utf-8")
        store = MagicMock()
        store.add_documents = AsyncMock(return_value=2)

        with patch("factory.build_store", return_value=store):
            assert cli.main(["ingest", "--path", str(leads)]) == 0

        assert "seeded with 2 chunks" in capsys.readouterr().out

    def test_ingest_missing_file_exits_with_1(self, tmp_path):
        with patch("factory.build_store", return_value=MagicMock()):
            assert cli.main(["ingest", "--path", str(tmp_path / "missing.md")]) == 1

    def test_agent_session_survives_failed_turn(self, capsys):
        turns = []

        async def stream(line, timeout=None):
            turns.append((line, timeout))
            if line == "bad lead":
                raise UnknownSpecialist("Router asked for unknown specialist 'crm_writer'")
            yield "Hi Jane"

        router = MagicMock()
        router.stream = stream

        with patch("factory.build_router", return_value=router), \
                patch("builtins.input", side_effect=["bad lead", "Jane Doe", ""]):
            assert cli.main(["agent"]) == 0

        assert [line for line, _ in turns] == ["bad lead", "Jane Doe"]
        assert turns[0][1] is not None
        captured = capsys.readouterr()
        assert "crm_writer" in captured.err
        assert "Hi Jane" in captured.out
