# tests/test_mcp_server.py
"""Tests for the MCP server implementation."""
import json
from unittest.mock import MagicMock, patch

import pytest

from notegraph_mcp.config import config
from notegraph_mcp.exceptions import AccessDeniedError, NoteNotFoundError, StorageError
from notegraph_mcp.models.schema import (
    GraphEdge,
    GraphNode,
    KnowledgeGraph,
    Note,
    Tenant,
    TenantKind,
)
from notegraph_mcp.server.mcp_server import NotebookMcpServer


def _note(note_id, tenant_id=7, **fields):
    return Note(id=note_id, tenant_id=tenant_id, tenant_kind=TenantKind.PERSONAL, **fields)


class TestMcpServer:
    """Tests for the NotebookMcpServer class with a mocked service."""

    def setup_method(self):
        """Set up test environment before each test."""
        # Capture the tool decorator functions when registering
        self.registered_tools = {}

        self.mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                self.registered_tools[kwargs.get('name')] = func
                return func
            return tool_wrapper
        self.mock_mcp.tool = mock_tool_decorator

        self.mock_note_service = MagicMock()

        self.mcp_patcher = patch('notegraph_mcp.server.mcp_server.FastMCP', return_value=self.mock_mcp)
        self.service_patcher = patch('notegraph_mcp.server.mcp_server.NoteService', return_value=self.mock_note_service)
        self.mcp_patcher.start()
        self.service_patcher.start()

        self.server = NotebookMcpServer()

    def teardown_method(self):
        """Clean up after each test."""
        self.mcp_patcher.stop()
        self.service_patcher.stop()

    def test_tools_registered(self):
        assert set(self.registered_tools) == {
            'nb_get_graph',
            'nb_get_backlinks',
            'nb_create_note',
            'nb_get_note',
            'nb_update_note',
            'nb_delete_note',
            'nb_list_notes',
            'nb_search_notes',
            'nb_status',
        }

    def test_construction_wires_service(self):
        # The constructor alone leaves the server ready to run
        server = NotebookMcpServer(engine="engine")
        assert server.note_service is self.mock_note_service
        assert server.mcp is self.mock_mcp
        assert len(self.registered_tools) == 9

    def test_get_graph_tool(self):
        stamp = _note(1).updated_at
        self.mock_note_service.get_graph.return_value = KnowledgeGraph(
            nodes=[
                GraphNode(id=1, title="A", updated_at=stamp),
                GraphNode(id=2, title="B", folder_id=5, updated_at=stamp),
            ],
            edges=[GraphEdge(source=1, target=2)],
        )
        result = json.loads(self.registered_tools['nb_get_graph'](user_id=7))
        assert result["edges"] == [{"source": 1, "target": 2}]
        assert [n["id"] for n in result["nodes"]] == [1, 2]
        assert result["nodes"][1]["folderId"] == 5
        self.mock_note_service.get_graph.assert_called_once_with(
            Tenant(id=7, kind=TenantKind.PERSONAL)
        )

    def test_get_graph_for_organization(self):
        self.mock_note_service.get_graph.return_value = KnowledgeGraph()
        result = self.registered_tools['nb_get_graph'](
            user_id=7, tenant_id=30, tenant_kind="organization"
        )
        assert json.loads(result) == {"nodes": [], "edges": []}
        self.mock_note_service.get_graph.assert_called_once_with(
            Tenant(id=30, kind=TenantKind.ORGANIZATION)
        )

    def test_invalid_tenant_kind(self):
        result = self.registered_tools['nb_get_graph'](user_id=7, tenant_id=30, tenant_kind="TEAM")
        assert result.startswith("Error: Invalid tenant kind")
        self.mock_note_service.get_graph.assert_not_called()

    def test_get_backlinks_tool(self):
        self.mock_note_service.get_backlinks.return_value = [_note(3, title="Linker")]
        result = json.loads(self.registered_tools['nb_get_backlinks'](note_id=1, user_id=7))
        assert [n["id"] for n in result] == [3]
        assert result[0]["title"] == "Linker"
        self.mock_note_service.get_backlinks.assert_called_once_with(
            1, Tenant(id=7, kind=TenantKind.PERSONAL)
        )

    def test_get_backlinks_not_found(self):
        self.mock_note_service.get_backlinks.side_effect = NoteNotFoundError(1)
        result = self.registered_tools['nb_get_backlinks'](note_id=1, user_id=7)
        assert result == "Error: Note with ID '1' not found"

    def test_create_note_tool(self):
        self.mock_note_service.create_note.return_value = _note(11)
        result = self.registered_tools['nb_create_note'](
            user_id=7, title="Test Note", content="See [[3|x]]", tags="tag1, tag2, tag1"
        )
        assert "11" in result
        self.mock_note_service.create_note.assert_called_once_with(
            Tenant(id=7, kind=TenantKind.PERSONAL),
            title="Test Note",
            content="See [[3|x]]",
            excerpt="",
            folder_id=None,
            is_pinned=False,
            tags=["tag1", "tag2"],
        )

    def test_create_note_title_too_long(self):
        result = self.registered_tools['nb_create_note'](
            user_id=7, title="x" * (config.max_title_length + 1)
        )
        assert result.startswith("Error: Invalid input")
        self.mock_note_service.create_note.assert_not_called()

    def test_get_note_tool(self):
        self.mock_note_service.get_note.return_value = _note(
            4, title="Shown", content="Body text", tags=["a"], is_pinned=True
        )
        result = self.registered_tools['nb_get_note'](note_id=4, user_id=7)
        assert result.startswith("# Shown\n")
        assert "ID: 4" in result
        assert "Pinned: yes" in result
        assert "Tags: a" in result
        assert result.rstrip().endswith("Body text")

    def test_get_note_access_denied(self):
        self.mock_note_service.get_note.side_effect = AccessDeniedError(4)
        result = self.registered_tools['nb_get_note'](note_id=4, user_id=7)
        assert result == "Error: Access denied"

    def test_update_note_tool(self):
        self.mock_note_service.update_note.return_value = _note(4)
        result = self.registered_tools['nb_update_note'](note_id=4, user_id=7, title="New")
        assert result == "Note updated successfully: 4"
        self.mock_note_service.update_note.assert_called_once_with(
            4,
            Tenant(id=7, kind=TenantKind.PERSONAL),
            title="New",
            content=None,
            excerpt=None,
            folder_id=None,
            is_pinned=None,
            tags=None,
        )

    def test_update_note_clears_tags(self):
        self.mock_note_service.update_note.return_value = _note(4)
        self.registered_tools['nb_update_note'](note_id=4, user_id=7, tags="")
        assert self.mock_note_service.update_note.call_args.kwargs["tags"] == []

    def test_delete_note_tool(self):
        result = self.registered_tools['nb_delete_note'](note_id=4, user_id=7)
        assert result == "Note deleted successfully: 4"
        self.mock_note_service.delete_note.assert_called_once_with(
            4, Tenant(id=7, kind=TenantKind.PERSONAL)
        )

    def test_list_and_search_tools(self):
        self.mock_note_service.list_notes.return_value = [_note(1), _note(2)]
        self.mock_note_service.search_notes.return_value = [_note(2)]
        listed = json.loads(self.registered_tools['nb_list_notes'](user_id=7, folder_id=3))
        found = json.loads(self.registered_tools['nb_search_notes'](query="alpha", user_id=7))
        assert [n["id"] for n in listed] == [1, 2]
        assert [n["id"] for n in found] == [2]
        self.mock_note_service.list_notes.assert_called_once_with(
            Tenant(id=7, kind=TenantKind.PERSONAL), folder_id=3
        )

    def test_status_tool(self):
        self.mock_note_service.count_notes.return_value = 12
        result = self.registered_tools['nb_status'](user_id=7)
        assert "PERSONAL:7" in result
        assert "Notes: 12" in result

    def test_storage_error_message(self):
        self.mock_note_service.list_notes.side_effect = StorageError(
            "Failed to read notes", operation="list_sorted_for_tenant"
        )
        assert self.registered_tools['nb_list_notes'](user_id=7) == "Error: Failed to read notes"

    def test_unexpected_error_is_not_leaked(self):
        self.mock_note_service.get_graph.side_effect = RuntimeError("secret internals")
        result = self.registered_tools['nb_get_graph'](user_id=7)
        assert result.startswith("Error: An unexpected error occurred (ref: ")
        assert "secret" not in result


class TestMcpServerIntegration:
    """End-to-end tool calls against a real in-memory store."""

    @pytest.fixture
    def tools(self, engine):
        registered = {}
        mock_mcp = MagicMock()

        def mock_tool_decorator(*args, **kwargs):
            def tool_wrapper(func):
                registered[kwargs.get('name')] = func
                return func
            return tool_wrapper
        mock_mcp.tool = mock_tool_decorator

        with patch('notegraph_mcp.server.mcp_server.FastMCP', return_value=mock_mcp):
            NotebookMcpServer(engine=engine)
        return registered

    def _create(self, tools, user_id, **fields):
        result = tools['nb_create_note'](user_id=user_id, **fields)
        assert result.startswith("Note created successfully with ID: ")
        return int(result.rsplit(" ", 1)[1])

    def test_graph_and_backlinks(self, tools):
        b = self._create(tools, 1, title="B")
        a = self._create(tools, 1, title="A", content=f"[[{b}|B]]")
        c = self._create(tools, 1, title="C", content=f"[[{a}|A]] [[{b}|B]] [[{b}|B]]")

        graph = json.loads(tools['nb_get_graph'](user_id=1))
        assert [n["id"] for n in graph["nodes"]] == [b, a, c]
        assert sorted((e["source"], e["target"]) for e in graph["edges"]) == sorted(
            [(a, b), (c, a), (c, b)]
        )

        backlinks = json.loads(tools['nb_get_backlinks'](note_id=b, user_id=1))
        assert sorted(n["id"] for n in backlinks) == sorted([a, c])

    def test_tenants_are_isolated(self, tools):
        mine = self._create(tools, 1, title="Mine")
        self._create(tools, 2, title="Theirs", content=f"[[{mine}|yours]]")

        assert json.loads(tools['nb_get_graph'](user_id=2))["edges"] == []
        assert json.loads(tools['nb_get_backlinks'](note_id=mine, user_id=1)) == []
        assert tools['nb_get_note'](note_id=mine, user_id=2) == "Error: Access denied"
        assert tools['nb_get_backlinks'](note_id=mine, user_id=2).startswith(
            "Error: Note with ID"
        )

    def test_organization_space(self, tools):
        org_note = self._create(tools, 1, title="Org", tenant_id=50, tenant_kind="ORGANIZATION")
        assert json.loads(tools['nb_get_graph'](user_id=1))["nodes"] == []
        org_graph = json.loads(
            tools['nb_get_graph'](user_id=2, tenant_id=50, tenant_kind="ORGANIZATION")
        )
        assert [n["id"] for n in org_graph["nodes"]] == [org_note]
