"""
Tests for the form render/bind engine: visibility sweeps, repeaters,
save gating, queued saves and host failures.
"""

import copy

import pytest

from yaml_form.exceptions import FormError, HostWriteError
from yaml_form.form_session import (
    STATUS_DIRTY,
    STATUS_INPUT_ERRORS,
    STATUS_READY,
    STATUS_SAVED,
    FormSession,
    RepeaterControl,
    SaveStatus,
    render_form,
)
from yaml_form.form_settings import FormSettings
from yaml_form.schema_model import parse_form_schema


class FakeHost:
    """In-memory stand-in for the vault."""

    def __init__(self, metadata=None, fail=False, on_write=None):
        self.metadata = metadata if metadata is not None else {}
        self.fail = fail
        self.on_write = on_write
        self.writes = 0

    def get_structured_metadata(self, document_id):
        return copy.deepcopy(self.metadata)

    def mutate_structured_metadata(self, document_id, updater):
        if self.fail:
            raise OSError("disk full")
        if self.on_write:
            self.on_write(self.writes)
        updater(self.metadata)
        self.writes += 1
        return self.metadata


MOOD_FORM = {
    'modelRoot': 'form_data',
    'fields': [
        {'path': 'mood', 'kind': 'select', 'options': ['Happy', 'Sad']},
        {'path': 'comment', 'kind': 'textarea', 'visibleIf': {'path': 'mood', 'equals': 'Sad'}},
    ],
}


def _mood_host(**kwargs):
    return FakeHost({'form': copy.deepcopy(MOOD_FORM), 'form_data': {'mood': 'Happy', 'comment': ''}}, **kwargs)


def _session(form, data, host=None):
    metadata = dict(copy.deepcopy(data))
    metadata['form'] = copy.deepcopy(form)
    host = host or FakeHost(metadata)
    return render_form(host, 'note.md', FormSettings()), host


class TestVisibilitySweep:
    """Visibility follows the staged model after every mutation."""

    def test_dependent_field_appears(self):
        host = _mood_host()
        session = render_form(host, 'note.md', FormSettings())

        comment = session.find_control('form_data.comment')
        assert comment.visible is False
        assert session.status == STATUS_READY

        session.find_control('form_data.mood').handle_input('Sad')

        assert comment.visible is True
        assert session.is_visible('form_data.comment') is True
        assert session.staged_model['mood'] == 'Sad'

    def test_edits_are_staged_until_save(self):
        host = _mood_host()
        session = render_form(host, 'note.md', FormSettings())

        session.find_control('form_data.mood').handle_input('Sad')

        assert host.metadata['form_data']['mood'] == 'Happy'
        assert session.dirty is True
        assert session.status == STATUS_DIRTY

        result = session.save()

        assert result.status == SaveStatus.SAVED
        assert host.metadata['form_data'] == {'mood': 'Sad', 'comment': ''}
        assert session.dirty is False
        assert session.status == STATUS_SAVED

    def test_listeners_run_after_mutation(self):
        session, _ = _session(MOOD_FORM, {'form_data': {'mood': 'Happy'}})
        seen = []
        session.subscribe(lambda s: seen.append(s.staged_model['mood']))

        session.find_control('form_data.mood').handle_input('Sad')

        assert seen == ['Sad']

    def test_item_fields_use_their_own_item(self):
        form = {'fields': [{'path': 'sets', 'kind': 'repeater', 'itemSchema': [
            {'path': 'warmup', 'kind': 'checkbox'},
            {'path': 'note', 'visibleIf': {'path': 'warmup', 'isTruthy': True}},
        ]}]}
        session, _ = _session(form, {'sets': [{'warmup': False}, {'warmup': True}]})

        assert session.find_control('sets.0.note').visible is False
        assert session.find_control('sets.1.note').visible is True

        session.find_control('sets.0.warmup').handle_input(True)

        assert session.find_control('sets.0.note').visible is True


class TestControls:
    """Input conversion performed by leaf controls."""

    def test_csv_numbers_keep_valid_tokens(self):
        form = {'fields': [{'path': 'weights', 'kind': 'csvNumber'}]}
        session, _ = _session(form, {'weights': [8, 8]})
        control = session.find_control('weights')

        assert control.display_value() == "8, 8"

        control.handle_input("10, x, 12.5")

        assert session.staged_model['weights'] == [10, 12.5]
        assert control.error == "Invalid numbers: x"
        assert session.has_input_errors() is True
        assert session.status == STATUS_INPUT_ERRORS

        control.handle_input("10, 11")
        assert control.error is None
        assert session.status == STATUS_DIRTY

    def test_csv_text(self):
        form = {'fields': [{'path': 'tags', 'kind': 'csvText'}]}
        session, _ = _session(form, {})
        session.find_control('tags').handle_input(" legs, , heavy ")
        assert session.staged_model['tags'] == ['legs', 'heavy']

    def test_number_input(self):
        form = {'fields': [{'path': 'reps', 'kind': 'number'}]}
        session, _ = _session(form, {'reps': 5})
        control = session.find_control('reps')

        control.handle_input(8.0)
        assert session.staged_model['reps'] == 8

        control.handle_input("")
        assert session.staged_model['reps'] is None

    def test_checkbox_display_value(self):
        form = {'fields': [{'path': 'done', 'kind': 'checkbox'}]}
        session, _ = _session(form, {})
        assert session.find_control('done').display_value() is False

    def test_nested_path_is_created(self):
        form = {'fields': [{'path': 'body.weight', 'kind': 'number'}]}
        session, _ = _session(form, {})
        session.find_control('body.weight').handle_input("81.5")
        assert session.staged_model == {'form': form, 'body': {'weight': 81.5}}

    def test_path_through_list_value_replaces_it(self):
        form = {'fields': [{'path': 'tags.primary'}]}
        session, _ = _session(form, {'tags': ['x']})
        session.controls[0].handle_input("hello")
        assert session.staged_model['tags'] == {'primary': "hello"}


class TestRepeater:
    """Repeater item management."""

    FORM = {'fields': [{'path': 'repeater', 'kind': 'repeater', 'itemSchema': [
        {'path': 'name', 'required': True},
        {'path': 'reps', 'kind': 'number'},
        {'path': 'tags', 'kind': 'csvText'},
        {'path': 'warmup', 'kind': 'checkbox'},
    ]}]}

    def _repeater(self, items):
        session, host = _session(self.FORM, {'repeater': items})
        control = session.controls[0]
        assert isinstance(control, RepeaterControl)
        return session, control

    def test_move_up_moves_values(self):
        session, repeater = self._repeater([{'name': 'A'}, {'name': 'B'}, {'name': 'C'}])
        generation = repeater.generation

        assert repeater.move_up(1) is True

        assert [item['name'] for item in session.staged_model['repeater']] == ['B', 'A', 'C']
        assert session.find_control('repeater.1.name').value == 'A'
        assert session.find_control('repeater.0.name').value == 'B'
        assert repeater.generation == generation + 1
        assert session.dirty is True

    def test_move_down_and_bounds(self):
        session, repeater = self._repeater([{'name': 'A'}, {'name': 'B'}])

        assert repeater.move_up(0) is False
        assert repeater.move_down(1) is False
        assert repeater.items[0].move_down() is True
        assert [item['name'] for item in session.staged_model['repeater']] == ['B', 'A']

    def test_remove(self):
        session, repeater = self._repeater([{'name': 'A'}, {'name': 'B'}, {'name': 'C'}])

        assert repeater.items[1].remove() is True
        assert repeater.remove(5) is False

        assert [item['name'] for item in session.staged_model['repeater']] == ['A', 'C']
        assert [item.tag for item in repeater.items] == ['#1', '#2']
        assert session.find_control('repeater.2.name') is None

    def test_add_item_uses_blank_values(self):
        session, repeater = self._repeater([])

        repeater.add_item()

        assert session.staged_model['repeater'] == [{'name': '', 'reps': '', 'tags': [], 'warmup': False}]
        assert len(repeater.items) == 1
        assert session.find_control('repeater.0.name') is not None

    def test_stale_visibility_nodes_are_dropped(self):
        session, repeater = self._repeater([{'name': 'A'}, {'name': 'B'}])
        before = len(session.visibility_nodes)

        repeater.remove(0)

        assert len(session.visibility_nodes) == before - len(self.FORM['fields'][0]['itemSchema'])

    def test_missing_array_is_initialised(self):
        session, _ = _session(self.FORM, {})
        assert session.staged_model['repeater'] == []


class TestSave:
    """Save gating, write-through and failure handling."""

    REQUIRED_FORM = {'fields': [
        {'path': 'title', 'required': True},
        {'path': 'mood'},
    ]}

    def test_top_level_merge_keeps_unrelated_keys(self):
        form = {'fields': [{'path': 'a', 'kind': 'number'}, {'path': 'b', 'kind': 'number'}]}
        session, host = _session(form, {'a': 0, 'b': 0, 'c': 3})

        session.find_control('a').handle_input("1")
        session.find_control('b').handle_input("2")
        session.save()

        assert host.metadata['a'] == 1
        assert host.metadata['b'] == 2
        assert host.metadata['c'] == 3
        assert host.metadata['form'] == form

    def test_required_field_blocks_manual_save(self):
        session, host = _session(self.REQUIRED_FORM, {'title': ''})
        session.find_control('mood').handle_input('ok')

        result = session.save()

        assert result.status == SaveStatus.BLOCKED
        assert result.invalid_paths == ['title']
        assert session.status == "Please fill required fields (1)"
        assert session.dirty is True
        assert host.writes == 0

    def test_autosave_bypasses_required_check(self):
        form = dict(self.REQUIRED_FORM, autosave=True)
        session, host = _session(form, {'title': ''})

        session.find_control('mood').handle_input('ok')

        assert host.writes == 1
        assert host.metadata['mood'] == 'ok'
        assert session.dirty is False
        assert session.status == STATUS_SAVED
        assert session.invalid_paths == ['title']

    def test_autosave_default_comes_from_settings(self):
        host = FakeHost({'form': {'fields': [{'path': 'mood'}]}})
        session = render_form(host, 'note.md', FormSettings(default_autosave=True))

        session.find_control('mood').handle_input('Sad')

        assert host.writes == 1

    def test_overlapping_save_is_queued(self):
        session, host = _session({'fields': [{'path': 'mood'}]}, {'mood': 'Happy'})
        queued = []

        def on_write(writes):
            if writes == 0:
                session.staged_model['mood'] = 'Sad'
                queued.append(session.save())

        host.on_write = on_write
        result = session.save()

        assert queued[0].status == SaveStatus.QUEUED
        assert result.saved
        assert host.writes == 2
        assert host.metadata['mood'] == 'Sad'

    def test_save_queued_while_lock_is_released_still_runs(self):
        session, host = _session({'fields': [{'path': 'mood'}]}, {'mood': 'Happy'})
        queued = []

        class LateLock:
            """Lock whose first release overlaps with another save call."""

            def __init__(self, lock):
                self.lock = lock

            def acquire(self, blocking=True):
                return self.lock.acquire(blocking)

            def release(self):
                if not queued:
                    session.staged_model['mood'] = 'Sad'
                    queued.append(session.save())
                self.lock.release()

        session._save_lock = LateLock(session._save_lock)
        result = session.save()

        assert queued[0].status == SaveStatus.QUEUED
        assert result.saved
        assert host.writes == 2
        assert host.metadata['mood'] == 'Sad'

    def test_host_failure_keeps_dirty(self):
        session, host = _session({'fields': [{'path': 'mood'}]}, {'mood': 'Happy'})
        host.fail = True
        session.find_control('mood').handle_input('Sad')

        with pytest.raises(HostWriteError) as exc_info:
            session.save()

        assert exc_info.value.document_id == 'note.md'
        assert session.dirty is True
        assert session.status.startswith("Save failed:")
        assert isinstance(session.last_error, OSError)

        host.fail = False
        assert session.save().saved
        assert session.dirty is False
        assert session.last_error is None

    def test_autosave_failure_still_updates_visibility(self):
        host = _mood_host(fail=True)
        host.metadata['form']['autosave'] = True
        session = render_form(host, 'note.md', FormSettings())

        with pytest.raises(HostWriteError):
            session.find_control('form_data.mood').handle_input('Sad')

        assert session.find_control('form_data.comment').visible is True
        assert session.dirty is True

    def test_save_without_host_raises(self):
        session = FormSession(parse_form_schema({'fields': [{'path': 'mood'}]}), {}).render()
        with pytest.raises(FormError):
            session.save()


class TestHostHandle:
    """Methods the app uses on a rendered form."""

    def test_get_current_model_is_a_copy(self):
        session, _ = _session({'fields': [{'path': 'tags', 'kind': 'csvText'}]}, {'tags': ['a']})
        snapshot = session.get_current_model()
        snapshot['tags'].append('b')
        assert session.staged_model['tags'] == ['a']

    def test_mark_dirty(self):
        session, _ = _session({'fields': [{'path': 'mood'}]}, {})
        session.mark_dirty()
        assert session.dirty is True
        assert session.status == STATUS_DIRTY

    def test_staged_model_is_isolated_from_metadata(self):
        metadata = {'form_data': {'mood': 'Happy'}}
        schema = parse_form_schema(MOOD_FORM)
        session = FormSession(schema, metadata).render()
        session.find_control('form_data.mood').handle_input('Sad')
        assert metadata['form_data']['mood'] == 'Happy'

    def test_non_mapping_model_root_starts_empty(self):
        schema = parse_form_schema(MOOD_FORM)
        session = FormSession(schema, {'form_data': 'text'}).render()
        assert session.staged_model == {}
