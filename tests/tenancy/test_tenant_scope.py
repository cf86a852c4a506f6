from decimal import Decimal

from sannu.models.product import Product
from sannu.models.project import Project
from sannu.tenancy.context import current_tenant_id, tenant_context
from sannu.tenancy.scoping import belongs_to_current_tenant, without_tenant_scope


def test_queries_are_unscoped_without_a_current_tenant(db, make_tenant, make_project):
    make_project(make_tenant("acme"), name="Acme Project")
    make_project(make_tenant("globex", name="Globex"), name="Globex Project")

    assert db.query(Project).count() == 2


def test_current_tenant_filters_queries(db, make_tenant, make_project):
    acme = make_tenant("acme")
    globex = make_tenant("globex", name="Globex")
    make_project(acme, name="Acme Project")
    make_project(globex, name="Globex Project")

    with tenant_context(acme):
        assert [p.name for p in db.query(Project).all()] == ["Acme Project"]
        assert db.query(Product).count() == 1
        assert without_tenant_scope(db.query(Project)).count() == 2

    assert current_tenant_id() is None


def test_new_rows_receive_the_current_tenant(db, make_tenant, make_project):
    acme = make_tenant("acme")
    project = make_project(acme)

    with tenant_context(acme):
        product = Product(project_id=project.id, name="Beans", price=Decimal("10.00"), sort_order=5)
        db.add(product)
        db.commit()
        assert product.tenant_id == acme.id
        assert belongs_to_current_tenant(product)


def test_explicit_tenant_id_is_kept(db, make_tenant, make_project):
    acme = make_tenant("acme")
    globex = make_tenant("globex", name="Globex")
    project = make_project(globex)

    with tenant_context(acme):
        product = Product(tenant_id=globex.id, project_id=project.id, name="Beans", price=Decimal("10.00"))
        db.add(product)
        db.commit()

    assert product.tenant_id == globex.id
