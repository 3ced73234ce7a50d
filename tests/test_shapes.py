"""Test shape heuristics and object search"""

import unittest

from studiocurl.extract.shapes import (
    score_tools_array,
    is_likely_tools_array,
    score_messages_array,
    is_likely_messages_array,
    is_agent_node,
    extract_agent_from_canvas,
    iter_containers,
    deep_find_array,
    find_in_object,
)


def _tool(name: str) -> dict[str, object]:
    return {'name': name, 'type': 'function'}


def _agent(name: str, selected: bool = False) -> dict[str, object]:
    return {
        'id': f"node-{name}",
        'name': name,
        'type': 'agent',
        'selected': selected,
        'config': {'tools': [_tool(f"{name}_tool")]},
    }


class TestToolsShape(unittest.TestCase):
    def test_ratio_half_accepted(self):
        arr = [_tool("a"), _tool("b"), {'x': 1}, {'y': 2}]
        score = score_tools_array(arr)
        self.assertEqual((score.matched, score.total), (2, 4))
        self.assertEqual(score.ratio, 0.5)
        self.assertTrue(is_likely_tools_array(arr))

    def test_ratio_low_rejected(self):
        arr = [_tool("a"), {'x': 1}, {'x': 2}, {'x': 3}, {'x': 4}]
        self.assertAlmostEqual(score_tools_array(arr).ratio, 0.2)
        self.assertFalse(is_likely_tools_array(arr))

    def test_threshold_tunable(self):
        arr = [_tool("a"), {'x': 1}, {'x': 2}, {'x': 3}, {'x': 4}]
        self.assertTrue(is_likely_tools_array(arr, threshold=0.2))

    def test_studio_tool_with_config(self):
        arr = [{'alias': "store", 'config': {'schema': {'type': 'object'}}}]
        self.assertTrue(is_likely_tools_array(arr))

    def test_name_required(self):
        arr = [{'type': 'function'}, {'type': 'tool'}]
        self.assertFalse(is_likely_tools_array(arr))

    def test_empty_and_not_array(self):
        self.assertFalse(is_likely_tools_array([]))
        self.assertFalse(is_likely_tools_array({'name': "a"}))
        self.assertEqual(score_tools_array("abc").total, 0)


class TestMessagesShape(unittest.TestCase):
    def test_one_message_enough(self):
        arr = [{'a': 1}, {'role': "user", 'content': None}, 3]
        self.assertEqual(score_messages_array(arr).matched, 1)
        self.assertTrue(is_likely_messages_array(arr))

    def test_role_must_be_string(self):
        self.assertFalse(is_likely_messages_array([{'role': 1, 'content': ""}]))

    def test_content_key_required(self):
        self.assertFalse(is_likely_messages_array([{'role': "user"}]))


class TestCanvas(unittest.TestCase):
    def test_no_canvas(self):
        selection = extract_agent_from_canvas([1, 2])
        self.assertIsNone(selection.agent)
        self.assertIsNone(selection.error)

    def test_no_agents(self):
        selection = extract_agent_from_canvas({'nodes': [{'type': 'llm'}]})
        self.assertIsNone(selection.agent)
        self.assertIsNone(selection.error)

    def test_single_agent_not_selected(self):
        agent = _agent("solo", selected=False)
        selection = extract_agent_from_canvas({'nodes': [{'type': 'x'}, agent]})
        self.assertIs(selection.agent, agent)
        self.assertIsNone(selection.error)

    def test_two_agents_none_selected(self):
        canvas = {'nodes': [_agent("alpha"), _agent("beta")]}
        selection = extract_agent_from_canvas(canvas)
        self.assertIsNone(selection.agent)
        self.assertIsNotNone(selection.error)
        self.assertIn("alpha", selection.error or "")
        self.assertIn("beta", selection.error or "")

    def test_id_used_when_no_name(self):
        first = {'id': "n1", 'type': 'agent'}
        second = {'id': "n2", 'type': 'agent'}
        selection = extract_agent_from_canvas({'nodes': [first, second]})
        self.assertIn("n1, n2", selection.error or "")

    def test_one_selected(self):
        beta = _agent("beta", selected=True)
        canvas = {'nodes': [_agent("alpha"), beta]}
        self.assertIs(extract_agent_from_canvas(canvas).agent, beta)

    def test_several_selected_first_wins(self):
        alpha = _agent("alpha", selected=True)
        canvas = {'nodes': [alpha, _agent("beta", selected=True)]}
        self.assertIs(extract_agent_from_canvas(canvas).agent, alpha)

    def test_agent_node(self):
        self.assertTrue(is_agent_node(_agent("a")))
        self.assertFalse(is_agent_node({'type': 'agent', 'config': {}}))


class TestSearch(unittest.TestCase):
    def test_cycle_terminates(self):
        root: dict[str, object] = {'a': {}}
        root['a']['back'] = root  # type: ignore
        root['list'] = [root]
        containers = list(iter_containers(root))
        self.assertEqual(len(containers), 3)
        self.assertIsNone(deep_find_array(root, is_likely_tools_array))

    def test_deep_nesting_no_recursion_limit(self):
        root: dict[str, object] = {}
        node = root
        for _ in range(5000):
            child: dict[str, object] = {}
            node['next'] = child
            node = child
        node['messages'] = [{'role': "user", 'content': "deep"}]
        found = deep_find_array(root, is_likely_messages_array)
        self.assertEqual(found, [{'role': "user", 'content': "deep"}])

    def test_hinted_key_preferred(self):
        early = [_tool("x")]
        hinted = [_tool("y")]
        root = {'aaa': {'list': early}, 'zzz': {'toolList': hinted}}
        self.assertIs(
            deep_find_array(root, is_likely_tools_array, ('tool',)), hinted
        )
        self.assertIs(deep_find_array(root, is_likely_tools_array), early)

    def test_tools_array_itself(self):
        arr = [_tool("a")]
        result = find_in_object(arr, 'tools')
        self.assertIsNotNone(result)
        self.assertEqual(result.kind, 'array')  # type: ignore
        self.assertIs(result.value, arr)  # type: ignore

    def test_canvas_ambiguity_short_circuits(self):
        canvas = {
            'nodes': [_agent("alpha"), _agent("beta")],
            'tools': [_tool("t")],
        }
        result = find_in_object(canvas, 'tools')
        self.assertEqual(result.kind, 'ambiguous')  # type: ignore
        self.assertIn("alpha", result.error)  # type: ignore

    def test_agent_node_itself(self):
        agent = _agent("solo")
        result = find_in_object(agent, 'tools')
        self.assertEqual(result.kind, 'agent_node')  # type: ignore
        self.assertIs(result.value, agent)  # type: ignore

    def test_tools_path(self):
        tools = [_tool("a"), _tool("b")]
        result = find_in_object({'data': {'tools': tools}}, 'tools')
        self.assertIs(result.value, tools)  # type: ignore

    def test_messages_paths(self):
        messages = [{'role': "user", 'content': "hi"}]
        for value in (
            {'messages': messages},
            {'thread': {'messages': messages}},
            {'observation': {'input': messages}},
        ):
            result = find_in_object(value, 'messages')
            self.assertIs(result.value, messages)  # type: ignore

    def test_messages_deep(self):
        messages = [{'role': "assistant", 'content': "ok"}]
        value = {'trace': {'spans': [{'payload': {'chatHistory': messages}}]}}
        result = find_in_object(value, 'messages')
        self.assertIs(result.value, messages)  # type: ignore

    def test_nothing_found(self):
        self.assertIsNone(find_in_object({'a': [1, 2]}, 'messages'))
        self.assertIsNone(find_in_object("text", 'tools'))
        self.assertIsNone(find_in_object(None, 'tools'))


if __name__ == "__main__":
    unittest.main()
