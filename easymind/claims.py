#!/usr/bin/env python3
"""
EasyMind - Role Claims Tooling
==============================
Maintain the 'role' custom claim that gates the admin and teacher consoles.

Usage:
    python -m easymind.claims set-teacher-claims
    python -m easymind.claims set-role <uid> [role]
    python -m easymind.claims check-roles
    python -m easymind.claims set-admin <uid> [<uid> ...]
    python -m easymind.claims watch
"""
import logging
import threading

from easymind import firebase, store

logger = logging.getLogger(__name__)


def set_role(uid, role='teacher'):
    """Set role on the auth user, keeping any other custom claims."""
    auth = firebase.get_auth()
    user = auth.get_user(uid)
    claims = dict(user.custom_claims or {})
    claims['role'] = role
    auth.set_custom_user_claims(uid, claims)
    logger.info("Set role %s for %s", role, uid)
    return claims


def current_role(uid):
    user = firebase.get_auth().get_user(uid)
    return (user.custom_claims or {}).get('role')


def set_teacher_claims():
    """Give role=teacher to every Active teacher that does not have it yet."""
    teachers = store.fetch_where(store.TEACHER_REQUESTS, [('status', '==', 'Active')])
    results = {"total": len(teachers), "successful": 0, "failed": 0, "skipped": 0, "errors": []}

    for teacher in teachers:
        uid = teacher['id']
        try:
            if current_role(uid) == 'teacher':
                results["skipped"] += 1
                continue
            set_role(uid, 'teacher')
            results["successful"] += 1
        except Exception as e:
            logger.error("Failed to set teacher claim for %s: %s", uid, e)
            results["failed"] += 1
            results["errors"].append({"uid": uid, "email": teacher.get('email'), "error": str(e)})

    return results


def check_roles():
    """Role claim of every teacher request, for spotting missing grants."""
    rows = []
    for teacher in store.fetch_all(store.TEACHER_REQUESTS):
        try:
            role = current_role(teacher['id'])
        except Exception as e:
            role = f"error: {e}"
        rows.append({
            "uid": teacher['id'],
            "email": teacher.get('email'),
            "status": teacher.get('status'),
            "role": role,
        })
    return rows


def set_admins(uids):
    results = {}
    for uid in uids:
        try:
            set_role(uid, 'admin')
            results[uid] = True
        except Exception as e:
            logger.error("Failed to set admin claim for %s: %s", uid, e)
            results[uid] = False
    return results


def needs_teacher_claim(teacher):
    return teacher.get('status') == 'Active' and teacher.get('previousStatus') != 'Active'


def handle_teacher_changes(changes):
    """Grant the teacher claim to requests that just became Active.

    Returns the uids granted.
    """
    granted = []
    for change in changes:
        if change.type.name != 'MODIFIED':
            continue
        teacher = store.doc_to_dict(change.document)
        if teacher is None or not needs_teacher_claim(teacher):
            continue
        uid = teacher['id']
        try:
            set_role(uid, 'teacher')
            store.update_document(store.TEACHER_REQUESTS, uid, {"previousStatus": "Active"})
            granted.append(uid)
        except Exception as e:
            logger.error("Error setting teacher claim for %s: %s", uid, e)
    return granted


def watch(stop_event=None):
    """Listen to teacherRequests until interrupted."""
    stop_event = stop_event or threading.Event()
    live = store.LiveQuery(
        store.collection(store.TEACHER_REQUESTS),
        lambda rows, changes: handle_teacher_changes(changes),
    )
    with live:
        logger.info("Watching teacherRequests for activations")
        try:
            while not stop_event.wait(1):
                pass
        except KeyboardInterrupt:
            logger.info("Watcher stopped")


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description="EasyMind role claims tooling")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("set-teacher-claims", help="Grant role=teacher to every Active teacher")

    set_role_parser = sub.add_parser("set-role", help="Set the role claim for one user")
    set_role_parser.add_argument("uid")
    set_role_parser.add_argument("role", nargs="?", default="teacher")

    sub.add_parser("check-roles", help="List the role claim of every teacher request")

    admin_parser = sub.add_parser("set-admin", help="Grant role=admin")
    admin_parser.add_argument("uids", nargs="+")

    sub.add_parser("watch", help="Grant teacher claims as requests become Active")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    if args.command == "set-teacher-claims":
        results = set_teacher_claims()
        print(f"\n📊 Results: {results['total']} active teacher(s)")
        print(f"  ✅ Successful: {results['successful']}")
        print(f"  ⏭️  Already set: {results['skipped']}")
        print(f"  ❌ Failed: {results['failed']}")
        for error in results['errors']:
            print(f"    - {error['email'] or error['uid']}: {error['error']}")
        return 1 if results['failed'] else 0

    elif args.command == "set-role":
        claims = set_role(args.uid, args.role)
        print(f"✅ {args.uid}: {claims}")

    elif args.command == "check-roles":
        for row in check_roles():
            print(f"  {row['email'] or row['uid']:<40} {row['status'] or '-':<10} {row['role']}")

    elif args.command == "set-admin":
        results = set_admins(args.uids)
        for uid, ok in results.items():
            print(f"  {'✅' if ok else '❌'} {uid}")
        return 0 if all(results.values()) else 1

    elif args.command == "watch":
        watch()

    else:
        parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
