from normalize.comments import extract_comments, extract_text


def _text(t):
    return {'type': 'text', 'text': t}


def test_extract_text_nested_paragraphs():
    nodes = [
        {'type': 'paragraph', 'content': [_text('Deployed'), _text('to staging')]},
        {'type': 'bulletList', 'content': [{'type': 'listItem', 'content': [{'type': 'paragraph', 'content': [_text('smoke ok')]}]}]},
    ]
    assert extract_text(nodes) == 'Deployed to staging smoke ok'


def test_extract_text_drops_code_blocks_and_unknown_nodes():
    nodes = [
        _text('before'),
        {'type': 'codeBlock', 'content': [_text('print(1)')]},
        {'type': 'hardBreak'},
        _text('after'),
    ]
    # dropped nodes still take a slot in the join
    assert extract_text(nodes) == 'before   after'


def test_extract_text_text_node_without_text():
    assert extract_text([{'type': 'text'}]) == ''
    assert extract_text([]) == ''


def test_extract_comments_labels_from_one():
    bodies = [
        [{'type': 'paragraph', 'content': [_text('first')]}],
        [{'type': 'paragraph', 'content': [_text('second')]}],
    ]
    assert extract_comments(bodies) == 'Comment-1: first Comment-2: second'


def test_extract_comments_empty():
    assert extract_comments([]) == ''
    assert extract_comments(None) == ''
