"""Step definitions for builder and presentation scenarios.

Questions and groups are referred to by their text/name in feature files;
ids returned by the API are remembered in ``context.vars``.
"""

from __future__ import annotations

from typing import Any, Dict, List

from behave import given, then, when


def _authoring(context, suffix: str = "") -> str:
    return f"{context.api_prefix}/authoring/questionnaires/{context.vars['qn']}{suffix}"


def _ids(context) -> Dict[str, int]:
    return context.vars.setdefault("ids", {})


def _builder_view(context) -> Dict[str, Any]:
    resp = context.client.get(_authoring(context), headers=context.editor_headers)
    assert resp.status_code == 200, resp.text
    return resp.json()


def _group_bucket(context, name: str) -> Dict[str, Any]:
    for bucket in _builder_view(context)["groups"]:
        if bucket["group"]["name"] == name:
            return bucket
    raise AssertionError(f"group {name!r} not found")


def _names(raw: str) -> List[str]:
    return [part.strip().strip('"') for part in raw.split(",")]


# ------------------
# Given
# ------------------

def _create_questionnaire(context, title: str, seed: bool) -> None:
    resp = context.client.post(
        f"{context.api_prefix}/authoring/questionnaires",
        json={"title": title, "seed_fixed_contact_fields": seed},
        headers=context.editor_headers,
    )
    assert resp.status_code == 201, resp.text
    context.vars["qn"] = resp.json()["id"]


@given('a draft questionnaire "{title}" with fixed contact fields')
def step_given_questionnaire_with_contact(context, title: str) -> None:
    _create_questionnaire(context, title, True)


@given('a draft questionnaire "{title}" without contact fields')
def step_given_questionnaire_plain(context, title: str) -> None:
    _create_questionnaire(context, title, False)


def _add_question(context, text: str, qtype: str, options: Any = None) -> None:
    payload: Dict[str, Any] = {"question_text": text, "question_type": qtype}
    if options is not None:
        payload["options"] = options
    resp = context.client.post(_authoring(context, "/questions"), json=payload, headers=context.editor_headers)
    assert resp.status_code == 201, resp.text
    _ids(context)[text] = resp.json()["question_id"]


@given('the questionnaire has a question "{text}" of type "{qtype}" with options "{options}"')
def step_given_choice_question(context, text: str, qtype: str, options: str) -> None:
    _add_question(context, text, qtype, options.replace("\\n", "\n"))


@given('the questionnaire has a question "{text}" of type "{qtype}"')
def step_given_question(context, text: str, qtype: str) -> None:
    _add_question(context, text, qtype)


@given('the editor changes the status to "{status}"')
def step_given_status(context, status: str) -> None:
    resp = context.client.post(_authoring(context, "/status"), json={"status": status}, headers=context.editor_headers)
    assert resp.status_code == 200, resp.text


# ------------------
# When
# ------------------

@when('the editor combines "{first}" and "{second}" into a group "{name}"')
@given('the editor combines "{first}" and "{second}" into a group "{name}"')
def step_combine(context, first: str, second: str, name: str) -> None:
    ids = _ids(context)
    context.response = context.client.post(
        _authoring(context, "/groups/combine"),
        json={"question_ids": [ids[first], ids[second]], "name": name},
        headers=context.editor_headers,
    )
    if context.response.status_code == 201:
        _ids(context)[f"group:{name}"] = context.response.json()["id"]


@when('the editor renames the group "{name}" to "{new_name}"')
def step_rename_group(context, name: str, new_name: str) -> None:
    group_id = _group_bucket(context, name)["group"]["id"]
    context.response = context.client.patch(
        _authoring(context, f"/groups/{group_id}"), json={"name": new_name}, headers=context.editor_headers
    )


@when('the editor moves "{text}" to position {index:d} of group "{name}"')
def step_move(context, text: str, index: int, name: str) -> None:
    group_id = _ids(context)[f"group:{name}"]
    context.response = context.client.post(
        _authoring(context, f"/questions/{_ids(context)[text]}/move"),
        json={"target_group_id": group_id, "target_index": index},
        headers=context.editor_headers,
    )


@when('the editor deletes the group "{name}"')
def step_delete_group(context, name: str) -> None:
    context.response = context.client.delete(
        _authoring(context, f"/groups/{_ids(context)[f'group:{name}']}"), headers=context.editor_headers
    )


@when("an end user requests the steps")
def step_request_steps(context) -> None:
    context.response = context.client.get(f"{context.api_prefix}/questionnaires/{context.vars['qn']}/steps")


# ------------------
# Then
# ------------------

@then("the response status is {status:d}")
def step_status(context, status: int) -> None:
    assert context.response.status_code == status, context.response.text


@then('the problem code is "{code}"')
def step_problem_code(context, code: str) -> None:
    assert context.response.headers["content-type"].startswith("application/problem+json")
    assert context.response.json()["code"] == code


@then('the group "{name}" has sort_order {sort_order:d}')
def step_group_sort_order(context, name: str, sort_order: int) -> None:
    assert _group_bucket(context, name)["group"]["sort_order"] == sort_order


@then('the group "{name}" contains {members} in that order')
def step_group_members(context, name: str, members: str) -> None:
    actual = [q["question_text"] for q in _group_bucket(context, name)["questions"]]
    assert actual == _names(members), actual


@then('the group "{name}" still exists')
def step_group_exists(context, name: str) -> None:
    assert _group_bucket(context, name)["group"]["is_fixed"] is True


@then("the ungrouped questions are {members}")
def step_ungrouped(context, members: str) -> None:
    actual = [q["question_text"] for q in _builder_view(context)["ungrouped"]]
    assert actual == _names(members), actual


@then("the plan has {count:d} steps")
def step_plan_count(context, count: int) -> None:
    body = context.response.json()
    assert body["total_steps"] == count
    assert len(body["steps"]) == count


@then('the step kinds are "{kinds}"')
def step_kinds(context, kinds: str) -> None:
    assert [s["kind"] for s in context.response.json()["steps"]] == _names(kinds)


@then("the response carries a weak ETag")
def step_weak_etag(context) -> None:
    assert context.response.headers["ETag"].startswith('W/"')
