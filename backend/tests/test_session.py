from formengine import mutator
from formengine.schemas import ConditionalRule, FormField, FormStyle, FormTree
from formengine.session import FormSession


def _session_with_events(**kwargs):
    session = FormSession(**kwargs)
    events = []
    session.subscribe(events.append)
    return session, events


def test_add_field_selects_and_notifies():
    session, events = _session_with_events()
    field_id = session.add_field("email")

    assert session.selected_node_id == field_id
    assert session.tree.title == "Untitled Form"
    assert [e.event for e in events] == ["field_added"]
    assert events[0].nodeId == field_id
    assert events[0].message == "Added a new email field to your form."


def test_unknown_kind_emits_nothing():
    session, events = _session_with_events()
    assert session.add_field("hologram") is None
    assert events == []


def test_field_menu_flow():
    session, events = _session_with_events()
    section_id = session.add_section()

    session.open_field_menu(section_id)
    assert session.menu_section_id == section_id
    field_id = session.add_field_to_section("radio")

    assert session.menu_section_id is None
    assert session.tree.nodes[0].children[0].id == field_id
    session.close_field_menu()
    session.close_field_menu()
    assert session.menu_section_id is None
    assert [e.event for e in events] == ["section_added", "field_added"]


def test_delete_clears_selection():
    session, events = _session_with_events()
    field_id = session.add_field("text")
    label = session.selected_node.label

    assert session.delete_node(field_id)
    assert session.selected_node_id is None
    assert events[-1].event == "field_deleted"
    assert events[-1].message == f'Deleted "{label}" from your form.'
    assert not session.delete_node(field_id)


def test_delete_keeps_other_selection():
    session, _ = _session_with_events()
    first = session.add_field("text")
    second = session.add_field("text")
    session.delete_node(first)
    assert session.selected_node_id == second


def test_update_emits_and_flags_dangling_reference():
    session, events = _session_with_events()
    field_id = session.add_field("text")
    node = session.selected_node.model_copy(
        update={"label": "Reason", "conditionalRule": ConditionalRule(fieldId="ghost")}
    )

    assert session.update_node(node)
    assert session.selected_node.label == "Reason"
    kinds = [e.event for e in events]
    assert kinds[-2:] == ["conditional_issue", "field_updated"]
    assert events[-1].message == 'Updated "Reason" settings.'
    assert session.conditional_issues() == ['"Reason" depends on a field that does not exist']


def test_reject_policy_refuses_cyclic_rule():
    session, events = _session_with_events(reference_policy="reject")
    a = session.add_field("text")
    b = session.add_field("text")
    a_node = mutator.update_conditional_rule(
        mutator.attach_conditional_rule(session.tree.nodes[0]), fieldId=b
    )
    assert session.update_node(a_node)

    b_node = mutator.update_conditional_rule(
        mutator.attach_conditional_rule(session.tree.nodes[1]), fieldId=a
    )
    assert not session.update_node(b_node)
    assert session.tree.nodes[1].conditionalRule is None
    assert events[-1].event == "conditional_issue"


def test_deleting_a_source_field_flags_dependents():
    session, events = _session_with_events()
    source = session.add_field("dropdown")
    session.add_field("text")
    dependent = session.tree.nodes[1].model_copy(
        update={"conditionalRule": ConditionalRule(fieldId=source, value="option1")}
    )
    session.update_node(dependent)

    session.delete_node(source)
    assert any(e.event == "conditional_issue" for e in events[-2:])


def test_set_value_clears_field_error():
    session, _ = _session_with_events()
    field_id = session.add_field("text")
    session.update_node(mutator.set_required(session.selected_node, True))

    assert field_id in session.validate()
    session.set_value(field_id, "filled")
    assert field_id not in session.errors


def test_submit_with_errors_is_rejected():
    session, events = _session_with_events()
    for _ in range(2):
        session.add_field("text")
        session.update_node(mutator.set_required(session.selected_node, True))

    assert session.submit() is None
    assert session.submissions == ()
    assert events[-1].event == "validation_failed"
    assert events[-1].message == "Please fix the 2 errors in the form."


def test_submit_only_keeps_visible_answers():
    session, events = _session_with_events()
    toggle = session.add_field("checkbox")
    hidden = session.add_field("text")
    section = session.add_section()
    child = session.add_field_to_section("text", section)
    rule = ConditionalRule(fieldId=toggle, value="yes")
    session.update_node(session.tree.nodes[1].model_copy(update={"conditionalRule": rule}))

    session.set_value(toggle, "no")
    session.set_value(hidden, "secret")
    session.set_value(child, "kept")
    session.set_value("stale-id", "dropped")
    submission = session.submit()

    assert submission is not None
    assert submission.values == {toggle: "no", child: "kept"}
    assert section not in submission.values
    assert session.viewed_submission == submission
    assert events[-1].event == "form_submitted"


def test_delete_viewed_submission_clears_viewer():
    session, events = _session_with_events()
    session.add_field("text")
    first = session.submit()
    second = session.submit()

    session.select_submission(first.id)
    assert session.delete_submission(first.id)
    assert session.viewed_submission_id is None
    assert [s.id for s in session.submissions] == [second.id]
    assert events[-1].event == "submission_deleted"
    assert not session.delete_submission(first.id)


def test_reorder_and_style_passthrough():
    style = FormStyle(buttonColor="#ff0000", borderRadius="lg")
    session, _ = _session_with_events(style=style)
    ids = [session.add_field(kind) for kind in ("text", "email", "date")]

    session.reorder(0, 2)
    assert [n.id for n in session.tree.nodes] == [ids[1], ids[2], ids[0]]
    session.reorder(1, None)
    assert [n.id for n in session.tree.nodes] == [ids[1], ids[2], ids[0]]
    assert session.style is style


def test_unsubscribe():
    session = FormSession()
    events = []
    unsubscribe = session.subscribe(events.append)
    unsubscribe()
    session.add_section()
    assert events == []


def test_reject_policy_allows_renaming_node_with_existing_issue():
    """Relabelling a node whose rule already dangles is not a new problem."""
    field = FormField(
        id="a", kind="text", label="Old", conditionalRule=ConditionalRule(fieldId="ghost")
    )
    session, events = _session_with_events(tree=FormTree(nodes=(field,)), reference_policy="reject")

    assert session.update_node(field.model_copy(update={"label": "New"}))
    assert session.tree.nodes[0].label == "New"
    assert [e.event for e in events] == ["field_updated"]


def test_reject_policy_allows_attaching_rule_before_picking_source():
    session, events = _session_with_events(reference_policy="reject")
    source = session.add_field("dropdown")
    session.add_field("text")

    attached = mutator.attach_conditional_rule(session.tree.nodes[1])
    assert session.update_node(attached)
    assert events[-2].event == "conditional_issue"

    pointed = mutator.update_conditional_rule(session.tree.nodes[1], fieldId=source)
    assert session.update_node(pointed)
    assert session.tree.nodes[1].conditionalRule.fieldId == source
    assert session.conditional_issues() == []

    dangling = mutator.update_conditional_rule(session.tree.nodes[1], fieldId="ghost")
    assert not session.update_node(dangling)
    assert session.tree.nodes[1].conditionalRule.fieldId == source


def test_deleting_section_clears_child_selection_and_errors():
    session, _ = _session_with_events()
    section = session.add_section()
    child = session.add_field_to_section("text", section)
    session.update_node(mutator.set_required(session.selected_node, True))
    session.update_node(mutator.set_required(session.tree.nodes[0], True))

    assert set(session.validate()) == {section, child}
    session.select_node(child)
    assert session.delete_node(section)
    assert session.selected_node_id is None
    assert session.errors == {}
