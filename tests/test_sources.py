"""Test collection of candidate sources from page snapshots"""

import unittest

from studiocurl.config.config import ExtractionSettings
from studiocurl.extract.sources import (
    EnvironmentSnapshot,
    ElementSnapshot,
    collect_sources,
    describe_sources,
)

LONG_JSON = '{"tools": [{"name": "lookup", "type": "function"}], "x": 1}'


class TestSnapshot(unittest.TestCase):
    def test_camel_case_keys(self):
        snapshot = EnvironmentSnapshot.model_validate(
            {
                'bodyText': "hello",
                'inputValues': ["a"],
                'globalState': {'store': {}},
                'elements': [{'tag': "pre", 'className': "json"}],
            }
        )
        self.assertEqual(snapshot.body_text, "hello")
        self.assertEqual(snapshot.input_values, ["a"])
        self.assertIn('store', snapshot.global_state)
        self.assertEqual(snapshot.elements[0].class_name, "json")

    def test_snake_case_keys(self):
        snapshot = EnvironmentSnapshot(body_text="hello")
        self.assertEqual(snapshot.body_text, "hello")


class TestTiers(unittest.TestCase):
    def test_empty_snapshot(self):
        self.assertEqual(collect_sources(EnvironmentSnapshot(), 'tools'), [])

    def test_tier_order(self):
        snapshot = EnvironmentSnapshot(
            selection="  [1]  ",
            body_text="body",
            input_values=["", "input"],
            scripts=["script"],
            editor_models=["model"],
            global_state={'__NEXT_DATA__': {'a': 1}},
            elements=[
                ElementSnapshot(tag="div", class_name="cm-content", text="cm"),
                ElementSnapshot(
                    tag="div", attributes={'data-state': LONG_JSON}
                ),
                ElementSnapshot(tag="pre", text=LONG_JSON),
            ],
        )
        sources = collect_sources(snapshot, 'tools')
        self.assertEqual(
            [s.tier for s in sources],
            [
                'selection',
                'body',
                'input',
                'script',
                'editor',
                'editor',
                'state',
                'attribute',
                'viewer',
            ],
        )
        self.assertEqual(sources[0].text, "[1]")
        self.assertEqual(sources[6].value, {'a': 1})
        self.assertIsNone(sources[6].text)

    def test_state_known_names_first(self):
        snapshot = EnvironmentSnapshot(
            global_state={
                'myWorkflowState': {'w': 1},
                'unrelated': {'u': 1},
                'store': {'s': 1},
            }
        )
        sources = collect_sources(snapshot, 'tools')
        self.assertEqual([s.origin for s in sources], ['store', 'myWorkflowState'])

    def test_state_bounded(self):
        state = {f"state{i}": {'i': i} for i in range(10)}
        settings = ExtractionSettings(max_state_candidates=3)
        sources = collect_sources(
            EnvironmentSnapshot(global_state=state), 'tools', settings
        )
        self.assertEqual(len(sources), 3)

    def test_state_strings_and_scalars(self):
        snapshot = EnvironmentSnapshot(
            global_state={'traceData': '{"a": 1}', 'graphSize': 12}
        )
        sources = collect_sources(snapshot, 'messages')
        self.assertEqual(len(sources), 1)
        self.assertEqual(sources[0].text, '{"a": 1}')

    def test_short_attributes_ignored(self):
        snapshot = EnvironmentSnapshot(
            elements=[
                ElementSnapshot(
                    attributes={'data-x': "[1]", 'title': LONG_JSON}
                )
            ]
        )
        self.assertEqual(collect_sources(snapshot, 'tools'), [])

    def test_viewer_markers_by_mode(self):
        text = '[{"role": "user", "content": "' + "x" * 120 + '"}]'
        snapshot = EnvironmentSnapshot(
            elements=[ElementSnapshot(class_name="json-tree", text=text)]
        )
        self.assertEqual(len(collect_sources(snapshot, 'messages')), 1)
        self.assertEqual(collect_sources(snapshot, 'tools'), [])

    def test_panel_fragments(self):
        text = (
            'Input [{"role": "user", "content": "hi"}] '
            'Output [{"role": "assistant", "content": "ok"}]'
        )
        snapshot = EnvironmentSnapshot(
            elements=[ElementSnapshot(class_name="side-drawer", text=text)]
        )
        sources = collect_sources(snapshot, 'messages')
        self.assertEqual(len(sources), 2)
        self.assertEqual(sources[0].text, '[{"role": "user", "content": "hi"}]')
        self.assertEqual(collect_sources(snapshot, 'tools'), [])

    def test_snapshot_not_mutated(self):
        state = {'store': {'nodes': [1, 2]}}
        snapshot = EnvironmentSnapshot(global_state=state, body_text="b")
        before = snapshot.model_dump()
        collect_sources(snapshot, 'tools')
        collect_sources(snapshot, 'messages')
        self.assertEqual(snapshot.model_dump(), before)


class TestDescribe(unittest.TestCase):
    def test_counts(self):
        snapshot = EnvironmentSnapshot(
            selection=" abc ", body_text="hello", scripts=["s1", "s2"]
        )
        sources = collect_sources(snapshot, 'tools')
        self.assertEqual(
            describe_sources(snapshot, sources),
            "sources=4, selected=3, body=5, textarea=0, editor=0, "
            "scripts=2, state=0, attributes=0, elements=0",
        )


if __name__ == "__main__":
    unittest.main()
