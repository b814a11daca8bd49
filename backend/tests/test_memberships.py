import pytest

from chatgrpc.errors import AlreadyExists, InvalidArgument, NotFound, PermissionDenied
from chatgrpc.models import MembershipRole


@pytest.fixture()
def group(rooms, people):
    """dani owns it, jwan is a member."""
    return rooms.create_group_room(people[0].id, "team", member_ids=[people[1].id])


def test_owner_promotes_and_admin_manages(memberships, group, people):
    dani, jwan, omar, lena = people

    # a plain member cannot add
    with pytest.raises(PermissionDenied):
        memberships.add_member(group.id, jwan.id, omar.id)

    memberships.promote_member(group.id, dani.id, jwan.id)
    assert memberships.role_of(group.id, jwan.id) == MembershipRole.ADMIN

    memberships.add_member(group.id, jwan.id, omar.id)
    assert memberships.role_of(group.id, omar.id) == MembershipRole.MEMBER

    # admins cannot promote
    with pytest.raises(PermissionDenied) as exc:
        memberships.promote_member(group.id, jwan.id, omar.id)
    assert exc.value.detail == "Only owner can promote members"

    with pytest.raises(InvalidArgument) as exc:
        memberships.remove_member(group.id, jwan.id, dani.id)
    assert exc.value.detail == "Cannot remove owner"

    memberships.remove_member(group.id, jwan.id, omar.id)
    assert memberships.role_of(group.id, omar.id) is None
    assert memberships.role_of(group.id, lena.id) is None


def test_add_existing_member(memberships, group, people):
    with pytest.raises(AlreadyExists):
        memberships.add_member(group.id, people[0].id, people[1].id)


def test_outsider_cannot_manage(memberships, group, people):
    with pytest.raises(PermissionDenied):
        memberships.add_member(group.id, people[3].id, people[2].id)
    with pytest.raises(PermissionDenied):
        memberships.remove_member(group.id, people[3].id, people[1].id)


def test_remove_non_member(memberships, group, people):
    with pytest.raises(NotFound) as exc:
        memberships.remove_member(group.id, people[0].id, people[2].id)
    assert exc.value.detail == "User not a member"


def test_unknown_room_and_requester(memberships, group, people):
    with pytest.raises(NotFound) as exc:
        memberships.add_member(999, people[0].id, people[2].id)
    assert exc.value.detail == "Chat room not found"
    with pytest.raises(NotFound):
        memberships.add_member(group.id, 999, people[2].id)
    with pytest.raises(NotFound):
        memberships.add_member(group.id, people[0].id, 999)


def test_private_room_is_not_managed(memberships, rooms, people):
    private = rooms.get_private_room(people[0].id, people[1].id)
    with pytest.raises(InvalidArgument) as exc:
        memberships.add_member(private.id, people[0].id, people[2].id)
    assert exc.value.detail == "Not a group chat"


def test_promote_is_noop_above_member(memberships, group, people):
    dani, jwan = people[0], people[1]
    memberships.promote_member(group.id, dani.id, dani.id)
    assert memberships.role_of(group.id, dani.id) == MembershipRole.OWNER

    memberships.promote_member(group.id, dani.id, jwan.id)
    memberships.promote_member(group.id, dani.id, jwan.id)
    assert memberships.role_of(group.id, jwan.id) == MembershipRole.ADMIN


def test_list_members_in_join_order(memberships, group, people):
    memberships.add_member(group.id, people[0].id, people[3].id)
    members = memberships.list_members(group.id)
    assert [m.user.username for m in members] == ["dani", "jwan", "lena"]
    assert [m.role for m in members] == [MembershipRole.OWNER, MembershipRole.MEMBER, MembershipRole.MEMBER]

    with pytest.raises(NotFound):
        memberships.list_members(999)


def test_list_user_group_rooms_excludes_private(memberships, rooms, group, people):
    dani, jwan = people[0], people[1]
    rooms.get_private_room(dani.id, jwan.id)
    other = rooms.create_group_room(jwan.id, "solo")

    assert [r.name for r in memberships.list_user_group_rooms(dani.id)] == ["team"]
    assert [r.id for r in memberships.list_user_group_rooms(jwan.id)] == [group.id, other.id]

    with pytest.raises(NotFound):
        memberships.list_user_group_rooms(999)
